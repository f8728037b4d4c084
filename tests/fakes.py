"""Scripted stand-ins for page drivers used across the test suite."""

import asyncio
from typing import Dict, Optional

from filterprobe.drivers.base import NavigationError, NavigationResponse, Page, PageDriver
from filterprobe.pool import PagePool
from filterprobe.probe import ProbeExecutor
from filterprobe.ratelimit import RateLimiter


class Reply:
    def __init__(
        self,
        status: Optional[int] = 200,
        final_url: Optional[str] = None,
        initial_status: Optional[int] = None,
        error: Optional[str] = None,
        raises: Optional[Exception] = None,
        hang: bool = False,
        no_response: bool = False,
    ):
        self.status = status
        self.final_url = final_url
        self.initial_status = initial_status
        self.error = error
        self.raises = raises
        self.hang = hang
        self.no_response = no_response


class FakePage(Page):
    def __init__(self, driver: "FakeDriver", number: int):
        self.driver = driver
        self.number = number
        self.closed = False
        self.resets = 0

    async def goto(self, url, timeout):
        driver = self.driver
        driver.visits.append(url)
        driver.in_flight += 1
        driver.max_in_flight = max(driver.max_in_flight, driver.in_flight)
        try:
            await asyncio.sleep(driver.delay)
            reply = driver.reply_for(url)
            if reply.hang:
                await asyncio.sleep(3600)
            if reply.raises is not None:
                raise reply.raises
            if reply.error:
                raise NavigationError(reply.error)
            if reply.no_response:
                return None
            return NavigationResponse(
                status=reply.status,
                url=reply.final_url or url,
                initial_status=reply.initial_status if reply.initial_status is not None else reply.status,
            )
        finally:
            driver.in_flight -= 1

    async def reset(self):
        self.resets += 1
        if self.driver.fail_reset:
            raise RuntimeError("reset failed")

    async def close(self):
        self.closed = True
        if self.driver.fail_close:
            raise RuntimeError("close failed")


class FakeDriver(PageDriver):
    name = "fake"

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, default: Optional[Reply] = None, delay: float = 0):
        self.replies = replies or {}
        self.default = default or Reply()
        self.delay = delay
        self.pages = []
        self.visits = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_reset = False
        self.fail_close = False
        self.fail_new_page = False
        self.started = False
        self.closed = False

    def reply_for(self, url: str) -> Reply:
        if url in self.replies:
            return self.replies[url]
        return self.replies.get(url.rstrip("/"), self.default)

    async def start(self):
        self.started = True

    async def new_page(self):
        if self.fail_new_page:
            raise RuntimeError("browser crashed")
        page = FakePage(self, len(self.pages))
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True

    @property
    def open_pages(self):
        return [p for p in self.pages if not p.closed]


def make_executor(driver, pool_size=2, force_abort_timeout=5.0):
    pool = PagePool(driver, size=pool_size, reset_timeout=1.0)
    limiter = RateLimiter(10_000, 1.0)
    return ProbeExecutor(pool, limiter, navigation_timeout=5, force_abort_timeout=force_abort_timeout)
