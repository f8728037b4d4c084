"""Liveness checker for the domains referenced by adblock filter lists."""

__version__ = "1.0.0"

from .errors import ConfigError, ErrorCode, NavigationError, classify_error
from .models import DomainTask, OutcomeKind, ProbeAttempt, ProbeResult, ScanOutcome, ScanResult
from .scheduler import Scheduler, run_scan

__all__ = [
    "ConfigError",
    "DomainTask",
    "ErrorCode",
    "NavigationError",
    "OutcomeKind",
    "ProbeAttempt",
    "ProbeResult",
    "ScanOutcome",
    "ScanResult",
    "Scheduler",
    "classify_error",
    "run_scan",
    "__version__",
]
