import pytest

from src.services.dispatcher import DispatcherOptions, JobDispatcher, PartialSubmissionError
from src.services.notification_bus import InMemoryNotificationBus
from src.services.result_cache import InMemoryResultCache
from src.services.validation import IndexValidationError
from src.services.value_store import InMemoryValueStore, ValueRecord


class _RecordingCache(InMemoryResultCache):
    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls

    async def set_pending(self, key: str) -> None:
        self.calls.append(f"cache:{key}")
        await super().set_pending(key)


class _RecordingBus(InMemoryNotificationBus):
    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls

    async def publish(self, channel: str, message: str) -> int:
        self.calls.append(f"publish:{channel}:{message}")
        return await super().publish(channel, message)


class _RecordingStore(InMemoryValueStore):
    def __init__(self, calls: list[str]) -> None:
        super().__init__()
        self.calls = calls

    async def append(self, number: int) -> ValueRecord:
        self.calls.append(f"store:{number}")
        return await super().append(number)


@pytest.mark.anyio
async def test_submit_runs_side_effects_in_order():
    calls: list[str] = []
    dispatcher = JobDispatcher(
        store=_RecordingStore(calls),
        cache=_RecordingCache(calls),
        bus=_RecordingBus(calls),
    )

    result = await dispatcher.submit("5")

    assert result == {"working": True}
    assert calls == ["cache:5", "publish:insert:5", "store:5"]


@pytest.mark.anyio
async def test_submit_sets_pending_marker_and_appends_record(dispatcher, cache, store):
    await dispatcher.submit(7)

    assert await dispatcher.list_current() == {"7": "pending"}
    assert await dispatcher.list_statuses() == {"7": "pending"}
    assert await dispatcher.list_all() == [ValueRecord(number=7)]


@pytest.mark.anyio
@pytest.mark.parametrize("raw", [41, "41", -3, "abc"])
async def test_rejected_submission_has_no_side_effects(dispatcher, cache, store, bus, raw):
    received: list[str] = []

    async def _handler(message: str) -> None:
        received.append(message)

    await bus.subscribe("insert", _handler)

    with pytest.raises(IndexValidationError):
        await dispatcher.submit(raw)

    await bus.drain()
    assert received == []
    assert await cache.get_all() == {}
    assert await store.read_all() == []


@pytest.mark.anyio
async def test_resubmitting_adds_a_second_record_but_keeps_one_cache_entry(dispatcher):
    await dispatcher.submit(3)
    await dispatcher.submit("3")

    assert await dispatcher.list_all() == [ValueRecord(number=3), ValueRecord(number=3)]
    assert await dispatcher.list_current() == {"3": "pending"}


@pytest.mark.anyio
async def test_failed_step_does_not_stop_later_steps(store, bus):
    class _BrokenCache(InMemoryResultCache):
        async def set_pending(self, key: str) -> None:
            raise ConnectionError("redis down")

    received: list[str] = []

    async def _handler(message: str) -> None:
        received.append(message)

    await bus.subscribe("insert", _handler)
    dispatcher = JobDispatcher(store=store, cache=_BrokenCache(), bus=bus)

    with pytest.raises(PartialSubmissionError) as excinfo:
        await dispatcher.submit(4)

    assert excinfo.value.failed_steps == ["cache"]
    await bus.drain()
    # No compensation: publish and ledger append still happened.
    assert received == ["4"]
    assert await store.read_all() == [ValueRecord(number=4)]


@pytest.mark.anyio
async def test_options_control_channel_and_limit(store, cache, bus):
    received: list[str] = []

    async def _handler(message: str) -> None:
        received.append(message)

    await bus.subscribe("jobs", _handler)
    dispatcher = JobDispatcher(
        store=store,
        cache=cache,
        bus=bus,
        options=DispatcherOptions(channel="jobs", max_index=10),
    )

    with pytest.raises(IndexValidationError):
        await dispatcher.submit(11)

    await dispatcher.submit(10)
    await bus.drain()
    assert received == ["10"]
