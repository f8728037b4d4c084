"""
Per-domain scan: probe, pick the next variant on failure, repeat until
a probe succeeds or the variants or retry budget run out, then classify.
"""

import logging
from collections import Counter
from enum import Enum
from typing import List, Optional

from .domains import get_base_domain, host_from_url
from .errors import ErrorCode
from .models import DomainTask, ProbeAttempt, ProbeResult, ScanOutcome, ScanResult
from .probe import ProbeExecutor
from .variants import next_variants

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    START = "start"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


def is_similar_redirect(original_domain: str, final_domain: str, ignore_similar: bool) -> bool:
    if not ignore_similar:
        return False
    return get_base_domain(original_domain) == get_base_domain(final_domain)


class DomainScan:
    def __init__(
        self,
        task: DomainTask,
        executor: ProbeExecutor,
        max_attempts: int = 4,
        max_retries_per_error: int = 2,
        https_only: bool = False,
        ignore_similar: bool = False,
    ):
        self.task = task
        self.executor = executor
        self.max_attempts = max(1, max_attempts)
        self.max_retries_per_error = max_retries_per_error
        self.https_only = https_only
        self.ignore_similar = ignore_similar
        self.state = ScanState.START
        self.attempts: List[ProbeAttempt] = []
        self.error_tally: Counter = Counter()
        self.current_url = f"https://{task.original}"
        self._success: Optional[ProbeResult] = None

    @property
    def domain(self) -> str:
        return self.task.original

    def _set_state(self, state: ScanState) -> None:
        logger.debug("%s: %s -> %s", self.domain, self.state.value, state.value)
        self.state = state

    async def run(self) -> ScanResult:
        while True:
            self._set_state(ScanState.ATTEMPTING)
            logger.debug("%s: attempt %d/%d %s", self.domain, len(self.attempts) + 1, self.max_attempts, self.current_url)
            result = await self.executor.probe(self.current_url)
            self.attempts.append(ProbeAttempt.from_result(result))

            if result.success:
                self._success = result
                self._set_state(ScanState.SUCCEEDED)
                break

            next_url = self._next_url(result)
            if next_url is None:
                self._set_state(ScanState.EXHAUSTED)
                break
            self.current_url = next_url
            self._set_state(ScanState.RETRYING)

        return ScanResult(task=self.task, outcome=self._outcome(), attempts=list(self.attempts))

    def _next_url(self, result: ProbeResult) -> Optional[str]:
        if result.error_code is not None:
            self.error_tally[result.error_code] += 1
            if self.error_tally[result.error_code] > self.max_retries_per_error:
                logger.debug(
                    "%s: max retries (%d) reached for %s",
                    self.domain,
                    self.max_retries_per_error,
                    result.error_code.value,
                )
                return None
        if len(self.attempts) >= self.max_attempts:
            logger.debug("%s: attempt budget of %d used up", self.domain, self.max_attempts)
            return None
        candidates = next_variants(self.domain, result.error_code, result.status, result.url, self.https_only)
        # candidates depend on the last URL only and can repeat an earlier attempt
        tried = {a.url for a in self.attempts}
        untried = [url for url in candidates if url not in tried]
        if not untried:
            logger.debug("%s: no more variants to try", self.domain)
            return None
        return untried[0]

    def _outcome(self) -> ScanOutcome:
        if self._success is not None:
            return self._success_outcome(self._success)

        # failures that say nothing about the domain itself keep it off the dead list
        not_dead = [a for a in self.attempts if a.error_code is not None and not a.error_code.indicates_dead]
        blocked = [a for a in not_dead if a.error_code is ErrorCode.BLOCKED_BY_CLIENT]
        if blocked:
            return ScanOutcome.inconclusive("Blocked by browser/extension/ISP", status=blocked[-1].status)
        if not_dead:
            last = not_dead[-1]
            return ScanOutcome.inconclusive(f"TLS/certificate error: {last.reason}", status=last.status)

        last = self.attempts[-1]
        return ScanOutcome.dead(last.reason or "All variants failed", status=last.status)

    def _success_outcome(self, result: ProbeResult) -> ScanOutcome:
        requested = host_from_url(result.url)
        final = host_from_url(result.final_url) or requested
        if requested == final:
            return ScanOutcome.active(status=result.status)
        if is_similar_redirect(requested, final, self.ignore_similar):
            logger.debug("%s: similar redirect to %s treated as active", self.domain, final)
            return ScanOutcome.active(status=result.status)
        status = result.initial_status if result.initial_status is not None else result.status
        return ScanOutcome.redirect(final_domain=final, final_url=result.final_url, status=status)

