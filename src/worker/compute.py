from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable

from src.config import Settings
from src.services.result_cache import ResultCache
from src.services.validation import IndexValidationError, parse_index
from src.worker.workloads import Workload, get_workload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5
    factor: float = 2.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after failed attempt number `attempt` (1-based)."""

        return min(self.max_delay, self.base_delay * self.factor ** (attempt - 1))


class ComputeWorker:
    """Turns an `insert` notification into a cached result.

    A payload that does not parse only goes to the dead-letter list. An index
    above `max_index` is marked failed without running the workload. Workload
    or cache errors are retried under the policy; once attempts run out the key is
    marked failed and a dead letter is recorded instead of leaving it pending.
    """

    def __init__(
        self,
        *,
        cache: ResultCache,
        workload: Workload,
        retry: RetryPolicy | None = None,
        max_index: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._workload = workload
        self._retry = retry or RetryPolicy()
        self._max_index = max_index
        self._sleep = sleep

    async def handle(self, payload: str) -> int | None:
        try:
            index = parse_index(payload)
        except IndexValidationError as exc:
            logger.warning("compute_rejected payload=%r error=%s", payload, exc)
            await self._cache.add_dead_letter(payload=str(payload), error=str(exc), attempts=1)
            return None

        key = str(index)
        if self._max_index is not None and index > self._max_index:
            # One over-limit message would hold a subscriber for hours.
            logger.warning("compute_over_limit index=%s max_index=%s", index, self._max_index)
            await self._cache.set_failed(
                key, payload=payload, error=f"Index above limit {self._max_index}", attempts=1
            )
            return None

        attempt = 0
        while True:
            attempt += 1
            try:
                # The workload is CPU bound; keep it off the event loop so a
                # subscriber can keep reading its channel.
                value = await asyncio.to_thread(self._workload, index)
                await self._cache.set_value(key, value)
            except Exception as exc:
                if attempt >= self._retry.max_attempts:
                    logger.exception("compute_failed index=%s attempts=%s", index, attempt)
                    await self._cache.set_failed(key, payload=payload, error=repr(exc), attempts=attempt)
                    return None

                delay = self._retry.delay_for(attempt)
                logger.warning(
                    "compute_retry index=%s attempt=%s delay=%.2f error=%r", index, attempt, delay, exc
                )
                await self._sleep(delay)
                continue

            logger.info("computed index=%s attempts=%s", index, attempt)
            return value


def build_compute_worker(cache: ResultCache, settings: Settings) -> ComputeWorker:
    return ComputeWorker(
        cache=cache,
        workload=get_workload(settings.workload),
        retry=RetryPolicy(
            max_attempts=max(1, settings.worker_max_attempts),
            base_delay=settings.worker_retry_base_delay,
            max_delay=settings.worker_retry_max_delay,
        ),
        max_index=settings.max_index,
    )
