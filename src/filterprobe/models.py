"""Records passed between the scan engine and its consumers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ErrorCode

ERROR_MESSAGE_MAX_LENGTH = 120


def truncate_reason(message: str, max_length: int = ERROR_MESSAGE_MAX_LENGTH) -> str:
    message = " ".join((message or "").split())
    if len(message) <= max_length:
        return message
    return message[:max_length] + "..."


@dataclass(frozen=True)
class DomainTask:
    original: str
    variants: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.variants:
            object.__setattr__(self, "variants", (self.original,))


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single navigation attempt."""

    url: str
    success: bool
    status: Optional[int] = None
    final_url: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    reason: Optional[str] = None
    initial_status: Optional[int] = None


@dataclass(frozen=True)
class ProbeAttempt:
    url: str
    succeeded: bool
    status: Optional[int] = None
    error_code: Optional[ErrorCode] = None
    final_url: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_result(cls, result: ProbeResult) -> "ProbeAttempt":
        return cls(
            url=result.url,
            succeeded=result.success,
            status=result.status,
            error_code=result.error_code,
            final_url=result.final_url,
            reason=result.reason,
        )


class OutcomeKind(str, Enum):
    ACTIVE = "active"
    DEAD = "dead"
    REDIRECT = "redirect"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class ScanOutcome:
    kind: OutcomeKind
    reason: Optional[str] = None
    final_domain: Optional[str] = None
    final_url: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def active(cls, status: Optional[int] = None) -> "ScanOutcome":
        return cls(OutcomeKind.ACTIVE, status=status)

    @classmethod
    def dead(cls, reason: str, status: Optional[int] = None) -> "ScanOutcome":
        return cls(OutcomeKind.DEAD, reason=reason or "All variants failed", status=status)

    @classmethod
    def redirect(cls, final_domain: str, final_url: str, status: Optional[int] = None) -> "ScanOutcome":
        return cls(OutcomeKind.REDIRECT, final_domain=final_domain, final_url=final_url, status=status)

    @classmethod
    def inconclusive(cls, reason: str, status: Optional[int] = None) -> "ScanOutcome":
        return cls(OutcomeKind.INCONCLUSIVE, reason=reason, status=status)


@dataclass
class ScanResult:
    task: DomainTask
    outcome: ScanOutcome
    attempts: List[ProbeAttempt] = field(default_factory=list)

    @property
    def domain(self) -> str:
        return self.task.original

    @property
    def kind(self) -> OutcomeKind:
        return self.outcome.kind

    def as_record(self) -> Dict[str, Any]:
        """Flatten into the per-domain record used by the report writers."""
        record: Dict[str, Any] = {"domain": self.domain, "statusCode": self.outcome.status}
        if self.outcome.kind is OutcomeKind.REDIRECT:
            record["finalDomain"] = self.outcome.final_domain
            record["finalUrl"] = self.outcome.final_url
            record["originalUrl"] = self.attempts[-1].url if self.attempts else f"https://{self.domain}"
        else:
            record["reason"] = self.outcome.reason
        return record
