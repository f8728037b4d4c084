"""
Pool of reusable page handles.

Creating a page handle (a browser session for the Chrome driver) is the
most expensive step of a probe, so a fixed set of handles is created up
front and recycled. Handles are reset on acquire so nothing carries over
from one domain to the next. When every pooled handle is busy the pool
hands out a transient handle that is closed on release instead of waiting.

All bookkeeping happens between awaits, which makes each acquire/release
atomic with respect to the other workers on the event loop.
"""

import asyncio
import logging
from typing import Dict, List, Set

from .config import RESET_TIMEOUT
from .drivers.base import Page, PageDriver

logger = logging.getLogger(__name__)


class PagePool:
    def __init__(self, driver: PageDriver, size: int = 10, reset_timeout: float = RESET_TIMEOUT):
        self.driver = driver
        self.size = max(1, size)
        self.reset_timeout = reset_timeout
        self.available: List[Page] = []
        self.in_use: Set[Page] = set()
        self.transient: Set[Page] = set()
        self.created = 0
        self.created_transient = 0
        self.replaced = 0
        # slots whose replacement page is still being created
        self._reserved = 0

    @property
    def owned(self) -> int:
        return len(self.available) + len(self.in_use) + self._reserved

    async def _new_page(self) -> Page:
        page = await self.driver.new_page()
        self.created += 1
        return page

    async def _new_pooled_page(self) -> Page:
        self._reserved += 1
        try:
            page = await self._new_page()
        finally:
            self._reserved -= 1
        self.in_use.add(page)
        return page

    async def initialize(self) -> None:
        """Create the pooled pages concurrently."""
        missing = self.size - self.owned
        if missing <= 0:
            return
        pages = await asyncio.gather(*(self._new_page() for _ in range(missing)), return_exceptions=True)
        failures = [p for p in pages if isinstance(p, BaseException)]
        self.available.extend(p for p in pages if not isinstance(p, BaseException))
        if failures:
            logger.warning("Page pool: %d of %d pages failed to start: %s", len(failures), missing, failures[0])
        logger.debug("Page pool initialized with %d pages", len(self.available))

    async def acquire(self) -> Page:
        """Return a clean pooled page, or a transient one when the pool is exhausted."""
        if self.available:
            page = self.available.pop()
            self.in_use.add(page)
            try:
                await asyncio.wait_for(page.reset(), timeout=self.reset_timeout)
            except Exception as e:
                logger.debug("Page reset failed (%s), replacing pooled page", e or type(e).__name__)
                try:
                    replacement = await self._new_pooled_page()
                finally:
                    self.in_use.discard(page)
                    await self._close_quietly(page)
                self.replaced += 1
                return replacement
            return page

        if self.owned < self.size:
            # refill a slot lost to a discarded page
            return await self._new_pooled_page()

        page = await self._new_page()
        self.created_transient += 1
        self.transient.add(page)
        logger.debug("Page pool exhausted, created transient page (%d in use)", len(self.in_use))
        return page

    async def release(self, page: Page) -> None:
        if page in self.in_use:
            self.in_use.discard(page)
            self.available.append(page)
            return
        self.transient.discard(page)
        await self._close_quietly(page)

    async def discard(self, page: Page) -> None:
        """Close a page that can no longer be trusted and forget it."""
        self.in_use.discard(page)
        self.transient.discard(page)
        if page in self.available:
            self.available.remove(page)
        await self._close_quietly(page)

    async def sweep(self) -> int:
        """Close transient pages nobody released."""
        lingering = list(self.transient)
        self.transient.clear()
        if lingering:
            logger.info("Cleanup: closing %d lingering pages", len(lingering))
            await asyncio.gather(*(self._close_quietly(p) for p in lingering))
        return len(lingering)

    async def destroy(self) -> None:
        pages = self.available + list(self.in_use) + list(self.transient)
        self.available = []
        self.in_use.clear()
        self.transient.clear()
        await asyncio.gather(*(self._close_quietly(p) for p in pages))
        logger.debug("Page pool destroyed (%d pages closed)", len(pages))

    @staticmethod
    async def _close_quietly(page: Page) -> None:
        try:
            await page.close()
        except Exception as e:
            logger.debug("Failed to close page: %s", e)

    def stats(self) -> Dict[str, int]:
        return {
            "total": self.size,
            "available": len(self.available),
            "in_use": len(self.in_use),
            "transient": len(self.transient),
            "created": self.created,
        }
