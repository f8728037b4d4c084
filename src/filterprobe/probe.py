"""Single URL probe: throttle, borrow a page, navigate, classify, give the page back."""

import asyncio
import logging

from .drivers.base import NavigationError
from .errors import ErrorCode, classify_error
from .models import ProbeResult, truncate_reason
from .pool import PagePool
from .ratelimit import RateLimiter

logger = logging.getLogger(__name__)


def is_success_status(status) -> bool:
    return status is not None and 200 <= status <= 399


class ProbeExecutor:
    def __init__(
        self,
        pool: PagePool,
        rate_limiter: RateLimiter,
        navigation_timeout: float,
        force_abort_timeout: float,
    ):
        self.pool = pool
        self.rate_limiter = rate_limiter
        self.navigation_timeout = navigation_timeout
        self.force_abort_timeout = force_abort_timeout

    async def probe(self, url: str) -> ProbeResult:
        await self.rate_limiter.acquire()
        logger.debug("Rate limit token acquired for %s", url)

        try:
            page = await self.pool.acquire()
        except Exception as e:
            logger.warning("Could not obtain a page for %s: %s", url, e)
            return ProbeResult(
                url=url,
                success=False,
                error_code=ErrorCode.UNCLASSIFIED,
                reason=truncate_reason(f"page unavailable: {e}"),
            )

        try:
            response = await asyncio.wait_for(
                page.goto(url, self.navigation_timeout), timeout=self.force_abort_timeout
            )
        except NavigationError as e:
            await self.pool.release(page)
            message = str(e)
            code = classify_error(message)
            logger.debug("Navigation to %s failed [%s]: %s", url, code.value, message)
            return ProbeResult(url=url, success=False, error_code=code, reason=truncate_reason(message))
        except asyncio.TimeoutError:
            # the driver never came back; the page may still be busy, so it is not reused
            logger.debug("Force-closing %s after %ss", url, self.force_abort_timeout)
            await self.pool.discard(page)
            return ProbeResult(
                url=url,
                success=False,
                error_code=ErrorCode.CONNECTION_TIMED_OUT,
                reason=f"force-aborted after {self.force_abort_timeout}s",
            )
        except Exception as e:
            logger.debug("Driver failure while loading %s: %r", url, e)
            await self.pool.discard(page)
            message = f"{type(e).__name__}: {e}"
            return ProbeResult(
                url=url, success=False, error_code=classify_error(message), reason=truncate_reason(message)
            )

        await self.pool.release(page)

        if response is None:
            return ProbeResult(url=url, success=False, reason="HTTP unreachable")

        status = response.status if response.status is not None else response.initial_status
        if not is_success_status(status):
            return ProbeResult(
                url=url,
                success=False,
                status=status,
                final_url=response.url,
                reason=f"HTTP {status or 'unreachable'}",
                initial_status=response.initial_status,
            )
        logger.debug("Navigation completed for %s -> %s (%s)", url, response.url, status)
        return ProbeResult(
            url=url,
            success=True,
            status=status,
            final_url=response.url,
            initial_status=response.initial_status,
        )
