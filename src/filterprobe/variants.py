"""
Choice of the next URL variants to try after a failed probe.

``next_variants`` is a pure function of its arguments; the scan state
machine takes the first candidate it returns.
"""

import logging
from typing import List, Optional

from .domains import has_subdomain, strip_subdomain
from .errors import ErrorCode

logger = logging.getLogger(__name__)

# upstream origin failure reported by an edge proxy (Cloudflare 520)
GATEWAY_ERROR_STATUSES = frozenset({520})


def https_only_filter(urls: List[str], https_only: bool) -> List[str]:
    if not https_only:
        return urls
    filtered = [url for url in urls if url.startswith("https://")]
    if len(filtered) < len(urls):
        logger.debug("HTTPS-only mode: dropped %d http candidates", len(urls) - len(filtered))
    return filtered


def next_variants(
    domain: str,
    error_code: Optional[ErrorCode],
    status: Optional[int],
    last_url: str,
    https_only: bool = False,
) -> List[str]:
    """Return the ordered candidate URLs to try after last_url failed."""
    www_domain = domain if domain.startswith("www.") else f"www.{domain}"
    last_was_https = last_url.startswith("https://")
    last_was_www = "://www." in last_url

    if error_code is ErrorCode.DNS_NOT_RESOLVED:
        # the scheme cannot fix a missing record, only the www record may exist
        if not last_was_www:
            return https_only_filter([f"https://{www_domain}", f"http://{www_domain}"], https_only)
        return []

    if error_code is ErrorCode.CONNECTION_REFUSED:
        # usually port 443 closed, try port 80 first
        if last_was_https:
            return https_only_filter(
                [f"http://{domain}", f"http://{www_domain}", f"https://{www_domain}"], https_only
            )
        if not last_was_www:
            return https_only_filter([f"http://{www_domain}", f"https://{www_domain}"], https_only)
        return []

    if error_code is ErrorCode.CONNECTION_TIMED_OUT:
        if not last_was_www:
            return https_only_filter(
                [f"https://{www_domain}", f"http://{domain}", f"http://{www_domain}"], https_only
            )
        return https_only_filter([f"http://{domain}", f"http://{www_domain}"], https_only)

    if error_code is ErrorCode.BLOCKED_BY_CLIENT:
        # an intermediary refused the request, another variant will not help
        return []

    if error_code is ErrorCode.TLS_ERROR:
        return []

    if status in GATEWAY_ERROR_STATUSES:
        if last_was_https:
            return https_only_filter(
                [f"http://{domain}", f"https://{www_domain}", f"http://{www_domain}"], https_only
            )
        if not last_was_www:
            return https_only_filter([f"https://{www_domain}", f"http://{www_domain}"], https_only)
        return []

    if status == 403 and has_subdomain(domain):
        base = strip_subdomain(domain)
        base_variants = [f"https://{base}", f"https://www.{base}", f"http://{base}", f"http://www.{base}"]
        if last_was_https:
            return https_only_filter([f"http://{domain}"] + base_variants, https_only)
        return https_only_filter(base_variants, https_only)

    if not last_was_www:
        return https_only_filter(
            [f"https://{www_domain}", f"http://{domain}", f"http://{www_domain}"], https_only
        )
    return https_only_filter([f"http://{domain}", f"http://{www_domain}"], https_only)
