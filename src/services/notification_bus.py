from __future__ import annotations

import asyncio
from collections import defaultdict
import contextlib
import logging
from typing import Any, Awaitable, Callable, Protocol

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


Handler = Callable[[str], Awaitable[Any]]


class Subscription:
    """Handle returned by subscribe(); close() stops further deliveries."""

    def __init__(self, channel: str, closer: Callable[[], Awaitable[None]]) -> None:
        self.channel = channel
        self._closer = closer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._closer()


class NotificationBus(Protocol):
    async def publish(self, channel: str, message: str) -> int:
        """Deliver `message` to current subscribers; returns how many were reached."""

    async def subscribe(self, channel: str, handler: Handler) -> Subscription: ...


async def _deliver(channel: str, handler: Handler, message: str) -> None:
    try:
        await handler(message)
    except Exception:
        # Nobody is waiting on a delivery; the log is the only place this shows up.
        logger.exception("bus_handler_failed channel=%s message=%s", channel, message)


class InMemoryNotificationBus:
    """Fan-out pub/sub inside one event loop.

    Every handler subscribed at publish time gets its own delivery task, so
    publish() returns without waiting on handlers. There is no backlog: a
    handler subscribed after a publish never sees that message.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)
        self._inflight: set[asyncio.Task] = set()

    async def publish(self, channel: str, message: str) -> int:
        handlers = list(self._subscribers.get(channel, ()))
        for handler in handlers:
            task = asyncio.create_task(_deliver(channel, handler, message))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        if not handlers:
            logger.warning("publish_without_subscribers channel=%s message=%s", channel, message)
        return len(handlers)

    async def subscribe(self, channel: str, handler: Handler) -> Subscription:
        self._subscribers[channel].append(handler)

        async def _close() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers[channel].remove(handler)

        return Subscription(channel, _close)

    async def drain(self) -> None:
        """Wait until every delivery started so far (and any they spawn) is done."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)


class RedisNotificationBus:
    """Redis PUBLISH/SUBSCRIBE.

    Redis pub/sub is fire-and-forget broadcast: each connected subscriber gets
    every message, and a message published while nobody listens is dropped.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, message: str) -> int:
        receivers = int(await self._redis.publish(channel, message))
        if receivers == 0:
            logger.warning("publish_without_subscribers channel=%s message=%s", channel, message)
        else:
            logger.debug("published channel=%s message=%s receivers=%s", channel, message, receivers)
        return receivers

    async def subscribe(self, channel: str, handler: Handler) -> Subscription:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(channel)
        listener = asyncio.create_task(self._listen(pubsub, channel, handler))

        async def _close() -> None:
            listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await listener
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()

        logger.info("subscribed channel=%s", channel)
        return Subscription(channel, _close)

    async def _listen(self, pubsub, channel: str, handler: Handler) -> None:
        # Messages are handled one at a time per subscriber, in arrival order.
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message["data"]
            if isinstance(data, bytes):
                data = data.decode()
            await _deliver(channel, handler, data)
