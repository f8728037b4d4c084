"""Token-bucket rate limiter shared by every probe in a run."""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket holding at most ``max_requests`` tokens.

    Tokens refill continuously at ``max_requests / interval`` per second.
    Waiters queue on an asyncio.Lock, which wakes them in FIFO order, so a
    waiter is served as soon as the tokens ahead of it have been handed out.
    """

    def __init__(self, max_requests: int, interval: float = 60.0):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.capacity = float(max_requests)
        self.rate = max_requests / interval
        self.tokens = self.capacity
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_update
        self.last_update = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)

    async def acquire(self) -> None:
        """Wait until a token is available and consume it."""
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= 1.0:
                    self.tokens -= 1.0
                    return
                wait_time = (1.0 - self.tokens) / self.rate
                logger.debug("Rate limit reached, waiting %.3fs for a token", wait_time)
                await asyncio.sleep(wait_time)

    @property
    def available(self) -> float:
        self._refill()
        return self.tokens
