"""
Domain helpers: validation, base-domain heuristics, www-expansion and
extraction of hostnames from adblock filter-list rules.
"""

import ipaddress
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Sequence
from urllib.parse import urlparse

import idna

from .models import DomainTask

logger = logging.getLogger(__name__)

MIN_DOMAIN_LENGTH = 4
BARE_DOMAIN_DOT_COUNT = 1

COSMETIC_RULE_RE = re.compile(r"^([^#]+)#[@$%?]*#")
DOMAIN_OPTION_RE = re.compile(r"domain=([^,\s$]+)")
UBO_RULE_RE = re.compile(r"^([^#\s]+?)(?:##(?:\+js\()?|#@#|##\^)")


def normalize_host(host: Optional[str]) -> str:
    if not host:
        return ""
    return host.strip().lower().strip(".")


def strip_www(host: str) -> str:
    host = normalize_host(host)
    return host[4:] if host.startswith("www.") else host


def host_from_url(url: Optional[str]) -> str:
    """Return the lowercased host of url without a leading www."""
    if not url:
        return ""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return strip_www(url)
    return strip_www(host)


def get_base_domain(domain: str) -> str:
    """Return the last two labels of domain, ignoring a leading www.

    This is not public-suffix aware: ``shop.example.co.uk`` yields
    ``co.uk``.
    """
    cleaned = strip_www(domain)
    parts = cleaned.split(".")
    if len(parts) <= 2:
        return cleaned
    return ".".join(parts[-2:])


def has_subdomain(domain: str) -> bool:
    return strip_www(domain).count(".") > 1


def strip_subdomain(domain: str) -> str:
    return get_base_domain(domain)


def is_bare_domain(domain: str) -> bool:
    return strip_www(domain).count(".") == BARE_DOMAIN_DOT_COUNT


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value.strip("[]"))
    except ValueError:
        return False
    return True


def is_valid_domain(domain: str) -> bool:
    """Check that domain is a probe-able hostname."""
    if not domain:
        return False
    if domain.endswith(".onion"):
        return False
    if is_ip_address(domain) or ":" in domain:
        return False
    if domain in ("localhost", "localhost.localdomain") or domain.endswith(".localhost"):
        return False
    if len(domain) < MIN_DOMAIN_LENGTH:
        return False
    return True


def validate_and_clean_domain(domain: str) -> Optional[str]:
    """Clean a candidate taken from a rule; return its ASCII form or None."""
    if not domain or "*" in domain:
        return None
    domain = domain.strip().lstrip(".~").rstrip(".").lower()
    if not domain or "." not in domain or len(domain) < MIN_DOMAIN_LENGTH:
        return None
    if not is_valid_domain(domain):
        return None
    try:
        ascii_domain = idna.encode(domain, uts46=True).decode("ascii")
    except (idna.IDNAError, UnicodeError) as e:
        logger.debug("Rejecting %s: %s", domain, e)
        return None
    return ascii_domain


def _clean_all(candidates: Iterable[str]) -> List[str]:
    cleaned = []
    for candidate in candidates:
        value = validate_and_clean_domain(candidate.strip())
        if value:
            cleaned.append(value)
    return cleaned


def extract_domains(line: str) -> List[str]:
    """Extract hostnames targeted by a single filter-list rule."""
    line = line.strip()
    if not line or line.startswith(("!", "[", "@@")):
        return []

    if line.startswith("||"):
        rule = line[2:]
        modifier_index = rule.find("^$")
        if modifier_index != -1:
            rule = rule[:modifier_index]
        domain = re.split(r"[\^/]", rule, maxsplit=1)[0]
        if is_ip_address(domain):
            return []
        cleaned = validate_and_clean_domain(domain)
        if cleaned:
            return [cleaned]

    match = COSMETIC_RULE_RE.match(line)
    if match:
        found = _clean_all(match.group(1).split(","))
        if found:
            return found

    match = DOMAIN_OPTION_RE.search(line)
    if match:
        found = _clean_all(d for d in match.group(1).split("|") if not d.strip().startswith("~"))
        if found:
            return found

    match = UBO_RULE_RE.match(line)
    if not match:
        return []
    return _clean_all(match.group(1).split(","))


def parse_domains_from_file(path: Path) -> List[str]:
    """Return sorted unique domains referenced by the rules in path."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    domains = set()
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            domains.update(extract_domains(line))
    return sorted(domains)


def filter_domains(
    domains: Sequence[str],
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None,
    exclude_patterns: Optional[Iterable[Pattern]] = None,
) -> List[str]:
    result = list(domains)
    if include:
        include_set = set(include)
        result = [d for d in result if d in include_set]
    if exclude:
        exclude_set = set(exclude)
        result = [d for d in result if d not in exclude_set]
    if exclude_patterns:
        patterns = list(exclude_patterns)
        result = [d for d in result if not any(p.search(d) for p in patterns)]
    return result


def expand_with_www(domains: Iterable[str], add_www: bool) -> List[DomainTask]:
    """Build DomainTasks, adding a www variant to bare domains when requested."""
    tasks = []
    for domain in domains:
        if add_www and not domain.startswith("www.") and is_bare_domain(domain):
            tasks.append(DomainTask(domain, (domain, f"www.{domain}")))
        else:
            tasks.append(DomainTask(domain, (domain,)))
    return tasks
