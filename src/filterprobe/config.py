"""
Run configuration: defaults, JSON config files and validation.

Every default can be overridden with a FILTERPROBE_* environment variable;
config files override the environment and command-line flags override both.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes"}


# =========================
# Defaults
# =========================

TIMEOUT = _env_int("FILTERPROBE_TIMEOUT", 30)                     # seconds per navigation
FORCE_ABORT_TIMEOUT = _env_int("FILTERPROBE_FORCE_ABORT_TIMEOUT", 60)
CONCURRENCY = _env_int("FILTERPROBE_CONCURRENCY", 12)
MAX_REQUESTS_PER_INTERVAL = _env_int("FILTERPROBE_MAX_REQUESTS", 600)
RATE_INTERVAL = 60.0
MAX_ATTEMPTS = _env_int("FILTERPROBE_MAX_ATTEMPTS", 4)
MAX_RETRIES_PER_ERROR = _env_int("FILTERPROBE_MAX_RETRIES_PER_ERROR", 2)
HTTPS_ONLY = _env_bool("FILTERPROBE_HTTPS_ONLY", False)
IGNORE_SIMILAR = _env_bool("FILTERPROBE_IGNORE_SIMILAR", False)
ADD_WWW = _env_bool("FILTERPROBE_ADD_WWW", False)
MAX_DOMAINS = _env_int("FILTERPROBE_MAX_DOMAINS", 100_000)
MAX_POOL_SIZE = 10
RESET_TIMEOUT = 5.0

DEAD_DOMAINS_FILE = "ca-dead-domains.txt"
REDIRECT_DOMAINS_FILE = "ca-redirect-domains.txt"
INCONCLUSIVE_DOMAINS_FILE = "ca-inconclusive-domains.txt"
LOG_FILE = "filterprobe.log"

OUTPUT_FORMATS = ("text", "json", "csv", "all")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

# (min, max) accepted per integer setting
LIMITS: Dict[str, Tuple[int, int]] = {
    "timeout": (1, 300),
    "force_abort_timeout": (1, 600),
    "concurrency": (1, 50),
    "max_requests_per_minute": (1, 10_000),
    "max_attempts": (1, 20),
    "max_retries_per_error": (1, 10),
    "max_domains": (1, 1_000_000),
    "test_count": (1, 10_000),
}


@dataclass
class ScanConfig:
    input_file: Optional[str] = None
    driver: str = "chrome"
    output_format: str = "text"
    output_dir: str = "."
    timeout: int = TIMEOUT
    force_abort_timeout: int = FORCE_ABORT_TIMEOUT
    concurrency: int = CONCURRENCY
    max_requests_per_minute: int = MAX_REQUESTS_PER_INTERVAL
    max_attempts: int = MAX_ATTEMPTS
    max_retries_per_error: int = MAX_RETRIES_PER_ERROR
    https_only: bool = HTTPS_ONLY
    ignore_similar: bool = IGNORE_SIMILAR
    add_www: bool = ADD_WWW
    max_domains: int = MAX_DOMAINS
    test_mode: bool = False
    test_count: int = 5
    include_timestamp: bool = True
    output_statistics: bool = False
    quiet: bool = False
    debug: bool = False
    log_file: Optional[str] = LOG_FILE
    user_agent: str = USER_AGENT
    browser_args: List[str] = field(default_factory=list)
    disable_sandbox: bool = False
    include_domains: List[str] = field(default_factory=list)
    exclude_domains: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    dead_domains_file: str = DEAD_DOMAINS_FILE
    redirect_domains_file: str = REDIRECT_DOMAINS_FILE
    inconclusive_domains_file: str = INCONCLUSIVE_DOMAINS_FILE

    @property
    def pool_size(self) -> int:
        return max(1, min(self.concurrency, MAX_POOL_SIZE))

    def compiled_exclude_patterns(self):
        return [re.compile(p) for p in self.exclude_patterns]

    def output_path(self, name: str) -> Path:
        return Path(self.output_dir) / name

    def validate(self) -> "ScanConfig":
        problems = validate_values(self.__dict__)
        if problems:
            raise ConfigError(problems)
        if self.disable_sandbox and self.driver == "chrome":
            logger.warning(
                "disable_sandbox is set: Chrome runs without its sandbox, so a hostile page can "
                "reach this machine. Only use it inside a disposable container."
            )
        if self.force_abort_timeout < self.timeout:
            logger.warning(
                "force_abort_timeout (%ss) is lower than timeout (%ss); slow pages will be force-aborted",
                self.force_abort_timeout,
                self.timeout,
            )
        return self

    def merged(self, **overrides: Any) -> "ScanConfig":
        """Return a copy with every override that is not None applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


FIELD_TYPES = {f.name: f.type for f in fields(ScanConfig)}


def validate_values(values: Dict[str, Any]) -> List[str]:
    problems = []
    for key, (low, high) in LIMITS.items():
        if key not in values:
            continue
        value = values[key]
        if isinstance(value, bool) or not isinstance(value, int):
            problems.append(f"'{key}' must be an integer")
        elif not low <= value <= high:
            problems.append(f"'{key}' must be between {low} and {high}")
    if "output_format" in values and values["output_format"] not in OUTPUT_FORMATS:
        problems.append(f"'output_format' must be one of {', '.join(OUTPUT_FORMATS)}")
    if "driver" in values and values["driver"] not in ("chrome", "http"):
        problems.append("'driver' must be 'chrome' or 'http'")
    for key, value in values.items():
        expected = FIELD_TYPES.get(key)
        if expected in (bool, "bool") and not isinstance(value, bool):
            problems.append(f"'{key}' must be true or false")
        elif expected in (List[str], "List[str]") and not (
            isinstance(value, list) and all(isinstance(v, str) for v in value)
        ):
            problems.append(f"'{key}' must be a list of strings")
    for pattern in values.get("exclude_patterns") or []:
        if not isinstance(pattern, str):
            continue
        try:
            re.compile(pattern)
        except re.error as e:
            problems.append(f"invalid exclude pattern {pattern!r}: {e}")
    return problems


def load_config(path: Optional[Path] = None) -> ScanConfig:
    """Load a JSON config file on top of the defaults and validate it."""
    if path is None:
        return ScanConfig().validate()
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to load config file '{path}': {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file '{path}' must contain a JSON object")

    # keys starting with "_" are comments
    values = {k: v for k, v in raw.items() if not k.startswith("_")}
    unknown = sorted(set(values) - set(FIELD_TYPES))
    problems = [f"unknown key '{k}'" for k in unknown]
    problems.extend(validate_values({k: v for k, v in values.items() if k in FIELD_TYPES}))
    if problems:
        raise ConfigError(problems)
    return ScanConfig(**values).validate()
