"""
Error kinds for navigation failures and the text classifier that maps
driver failure messages onto them.
"""

from enum import Enum
from typing import Optional, Tuple


class ErrorCode(str, Enum):
    DNS_NOT_RESOLVED = "ERR_NAME_NOT_RESOLVED"
    CONNECTION_REFUSED = "ERR_CONNECTION_REFUSED"
    CONNECTION_TIMED_OUT = "ERR_CONNECTION_TIMED_OUT"
    BLOCKED_BY_CLIENT = "ERR_BLOCKED_BY_CLIENT"
    CONNECTION_RESET = "ERR_CONNECTION_RESET"
    TLS_ERROR = "ERR_TLS"
    ADDRESS_UNREACHABLE = "ERR_ADDRESS_UNREACHABLE"
    UNCLASSIFIED = "ERR_UNCLASSIFIED"

    @property
    def indicates_dead(self) -> bool:
        """Certificate problems and client-side blocks say nothing about the domain itself."""
        return self not in (ErrorCode.TLS_ERROR, ErrorCode.BLOCKED_BY_CLIENT)


# Ordered: the first rule with a matching needle wins.
ERROR_RULES: Tuple[Tuple[ErrorCode, Tuple[str, ...]], ...] = (
    (ErrorCode.DNS_NOT_RESOLVED, (
        "err_name_not_resolved",
        "name or service not known",
        "nodename nor servname",
        "temporary failure in name resolution",
        "no address associated with hostname",
        "getaddrinfo failed",
    )),
    (ErrorCode.CONNECTION_REFUSED, (
        "err_connection_refused",
        "connection refused",
        "[errno 111]",
        "[winerror 1225]",
    )),
    (ErrorCode.CONNECTION_TIMED_OUT, (
        "err_connection_timed_out",
        "err_timed_out",
        "timeout",
        "timed out",
    )),
    (ErrorCode.BLOCKED_BY_CLIENT, (
        "err_blocked_by_client",
        "err_blocked_by_administrator",
    )),
    (ErrorCode.CONNECTION_RESET, (
        "err_connection_reset",
        "connection reset",
        "reset by peer",
        "err_connection_closed",
        "server disconnected",
    )),
    (ErrorCode.TLS_ERROR, (
        "err_ssl_",
        "err_cert",
        "certificate",
        "[ssl:",
        "sslerror",
    )),
    (ErrorCode.ADDRESS_UNREACHABLE, (
        "err_address_unreachable",
        "err_network_unreachable",
        "network is unreachable",
        "no route to host",
    )),
)


def classify_error(message: Optional[str]) -> ErrorCode:
    """Map an unstructured failure message to an ErrorCode."""
    text = (message or "").lower()
    if not text:
        return ErrorCode.UNCLASSIFIED
    for code, needles in ERROR_RULES:
        if any(needle in text for needle in needles):
            return code
    return ErrorCode.UNCLASSIFIED


class NavigationError(Exception):
    """Raised by page drivers when a navigation fails before a response arrives."""


class ConfigError(ValueError):
    """Raised when configuration values are missing or out of range."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Invalid configuration:\n" + "\n".join(f"  - {p}" for p in self.problems))
