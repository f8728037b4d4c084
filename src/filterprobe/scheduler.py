"""
Worker pool that scans domains concurrently.

A shared queue is filled once; ``concurrency`` workers each pop a task,
run its scan to completion and pop again until the queue is empty.
Results are handed to the callback as they finish, in completion order.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from .config import RATE_INTERVAL, ScanConfig
from .drivers.base import PageDriver
from .models import DomainTask, ScanOutcome, ScanResult, truncate_reason
from .pool import PagePool
from .probe import ProbeExecutor
from .ratelimit import RateLimiter
from .scanner import DomainScan

logger = logging.getLogger(__name__)

ResultCallback = Callable[[ScanResult], Union[None, Awaitable[None]]]


class Scheduler:
    def __init__(
        self,
        driver: PageDriver,
        config: ScanConfig,
        on_result: Optional[ResultCallback] = None,
    ):
        self.driver = driver
        self.config = config
        self.on_result = on_result
        self.pool: Optional[PagePool] = None
        self.rate_limiter: Optional[RateLimiter] = None
        self.results: List[ScanResult] = []

    def _build_executor(self) -> ProbeExecutor:
        self.rate_limiter = RateLimiter(self.config.max_requests_per_minute, RATE_INTERVAL)
        self.pool = PagePool(self.driver, self.config.pool_size)
        return ProbeExecutor(
            self.pool,
            self.rate_limiter,
            navigation_timeout=self.config.timeout,
            force_abort_timeout=self.config.force_abort_timeout,
        )

    async def run(self, tasks: Iterable[DomainTask], concurrency: Optional[int] = None) -> List[ScanResult]:
        """Scan every task and return one ScanResult per task, in completion order."""
        concurrency = concurrency or self.config.concurrency
        queue: asyncio.Queue = asyncio.Queue()
        for task in tasks:
            queue.put_nowait(task)
        total = queue.qsize()
        self.results = []

        executor = self._build_executor()
        try:
            await self.pool.initialize()
        except Exception as e:
            logger.warning("Page pool initialization failed, continuing with on-demand pages: %s", e)

        logger.debug("Starting %d domains with concurrency %d", total, concurrency)
        try:
            await asyncio.gather(*(self._worker(i, queue, executor) for i in range(concurrency)))
        finally:
            await self._teardown()
        logger.debug("All workers completed, %d results", len(self.results))
        return self.results

    async def _worker(self, worker_id: int, queue: asyncio.Queue, executor: ProbeExecutor) -> None:
        while True:
            try:
                task = queue.get_nowait()
            except asyncio.QueueEmpty:
                logger.debug("Worker %d finished (queue empty)", worker_id)
                return
            result = await self._scan(task, executor)
            self.results.append(result)
            await self._emit(result)

    async def _scan(self, task: DomainTask, executor: ProbeExecutor) -> ScanResult:
        scan = DomainScan(
            task,
            executor,
            max_attempts=self.config.max_attempts,
            max_retries_per_error=self.config.max_retries_per_error,
            https_only=self.config.https_only,
            ignore_similar=self.config.ignore_similar,
        )
        try:
            return await scan.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Scan of %s failed unexpectedly", task.original)
            return ScanResult(
                task=task,
                outcome=ScanOutcome.inconclusive(truncate_reason(f"internal error: {e}")),
                attempts=list(scan.attempts),
            )

    async def _emit(self, result: ScanResult) -> None:
        if self.on_result is None:
            return
        try:
            outcome = self.on_result(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Result callback failed for %s: %s", result.domain, e)

    async def _teardown(self) -> None:
        if self.pool is None:
            return
        try:
            await self.pool.sweep()
            await self.pool.destroy()
        except Exception as e:
            logger.warning("Page pool cleanup failed: %s", e)


async def run_scan(
    driver: PageDriver,
    tasks: Iterable[DomainTask],
    config: ScanConfig,
    on_result: Optional[ResultCallback] = None,
) -> List[ScanResult]:
    return await Scheduler(driver, config, on_result).run(tasks)
