import asyncio

import pytest

from src.services.notification_bus import InMemoryNotificationBus


@pytest.mark.anyio
async def test_every_subscriber_receives_every_message(bus: InMemoryNotificationBus):
    first: list[str] = []
    second: list[str] = []

    async def _first(message: str) -> None:
        first.append(message)

    async def _second(message: str) -> None:
        second.append(message)

    await bus.subscribe("insert", _first)
    await bus.subscribe("insert", _second)

    assert await bus.publish("insert", "1") == 2
    assert await bus.publish("insert", "2") == 2
    await bus.drain()

    assert sorted(first) == ["1", "2"]
    assert sorted(second) == ["1", "2"]


@pytest.mark.anyio
async def test_late_subscriber_gets_no_replay(bus: InMemoryNotificationBus):
    received: list[str] = []

    async def _handler(message: str) -> None:
        received.append(message)

    assert await bus.publish("insert", "9") == 0
    await bus.subscribe("insert", _handler)
    await bus.drain()

    assert received == []


@pytest.mark.anyio
async def test_channels_are_isolated_and_close_stops_delivery(bus: InMemoryNotificationBus):
    received: list[str] = []

    async def _handler(message: str) -> None:
        received.append(message)

    subscription = await bus.subscribe("insert", _handler)
    await bus.publish("other", "x")
    await bus.publish("insert", "1")
    await bus.drain()

    await subscription.close()
    assert subscription.closed
    await bus.publish("insert", "2")
    await bus.drain()

    assert received == ["1"]


@pytest.mark.anyio
async def test_publish_does_not_wait_for_handlers(bus: InMemoryNotificationBus):
    release = asyncio.Event()
    done: list[str] = []

    async def _slow(message: str) -> None:
        await release.wait()
        done.append(message)

    await bus.subscribe("insert", _slow)
    await bus.publish("insert", "3")
    assert done == []

    release.set()
    await asyncio.wait_for(bus.drain(), timeout=5)
    assert done == ["3"]


@pytest.mark.anyio
async def test_failing_handler_does_not_affect_other_subscribers(bus: InMemoryNotificationBus):
    received: list[str] = []

    async def _broken(message: str) -> None:
        raise RuntimeError("boom")

    async def _ok(message: str) -> None:
        received.append(message)

    await bus.subscribe("insert", _broken)
    await bus.subscribe("insert", _ok)
    await bus.publish("insert", "4")
    await bus.drain()

    assert received == ["4"]
