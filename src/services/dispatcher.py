from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from src.services.notification_bus import NotificationBus
from src.services.result_cache import ResultCache
from src.services.validation import parse_index
from src.services.value_store import DurableStore, ValueRecord

logger = logging.getLogger(__name__)


class PartialSubmissionError(RuntimeError):
    """One or more submission side effects failed; the others were kept."""

    def __init__(self, index: int, failed_steps: list[str]) -> None:
        super().__init__(f"Submission of index {index} failed at: {', '.join(failed_steps)}")
        self.index = index
        self.failed_steps = failed_steps


@dataclass(frozen=True)
class DispatcherOptions:
    channel: str = "insert"
    max_index: int = 40


class JobDispatcher:
    """Accepts index submissions and fans them out to the stores and the bus.

    The dispatcher never waits for a computation. It receives its store, cache
    and bus handles from the caller; it holds no connections of its own.
    """

    def __init__(
        self,
        *,
        store: DurableStore,
        cache: ResultCache,
        bus: NotificationBus,
        options: DispatcherOptions | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._bus = bus
        self._options = options or DispatcherOptions()

    async def submit(self, raw_index: Any) -> dict[str, bool]:
        """Accept a submission.

        Order: cache pending marker, bus publish, ledger append. Every step is
        attempted even if an earlier one failed and nothing is rolled back, so a
        partial submission is a possible end state. Validation errors are raised
        before any write.
        """

        index = parse_index(raw_index, max_index=self._options.max_index)
        key = str(index)

        steps = (
            ("cache", lambda: self._cache.set_pending(key)),
            ("publish", lambda: self._bus.publish(self._options.channel, key)),
            ("store", lambda: self._store.append(index)),
        )

        failed: list[str] = []
        for name, step in steps:
            try:
                await step()
            except Exception:
                logger.exception("submit_step_failed step=%s index=%s", name, index)
                failed.append(name)

        if failed:
            raise PartialSubmissionError(index, failed)

        logger.info("submitted index=%s channel=%s", index, self._options.channel)
        return {"working": True}

    async def list_current(self) -> dict[str, str]:
        return await self._cache.get_all()

    async def list_all(self) -> list[ValueRecord]:
        return await self._store.read_all()

    async def list_statuses(self) -> dict[str, str]:
        return await self._cache.get_statuses()

    async def list_failed(self) -> list[dict[str, Any]]:
        return await self._cache.get_dead_letters()
