from __future__ import annotations

import json
from typing import Any, Protocol

from redis.asyncio import Redis

from src.config import Settings


STATUS_PENDING = "pending"
STATUS_COMPUTED = "computed"
STATUS_FAILED = "failed"


class ResultCache(Protocol):
    """Mutable index -> value|pending mapping shared by dispatcher and workers.

    Alongside the value each key carries a job status (pending, computed or
    failed) and jobs the worker gave up on are appended to a dead-letter list.
    Last writer wins per key.
    """

    async def set_pending(self, key: str) -> None: ...

    async def set_value(self, key: str, value: int) -> None: ...

    async def set_failed(self, key: str, *, payload: str, error: str, attempts: int) -> None: ...

    async def add_dead_letter(self, *, payload: str, error: str, attempts: int) -> None:
        """Record a job that has no usable key (malformed payload)."""

    async def get_all(self) -> dict[str, str]: ...

    async def get_statuses(self) -> dict[str, str]: ...

    async def get_dead_letters(self) -> list[dict[str, Any]]: ...


class RedisResultCache:
    """Result cache backed by two Redis hashes and a list.

    Value and status for one key are written in a single MULTI/EXEC so readers
    never see a computed value with a pending status.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        values_key: str = "values",
        status_key: str = "values:status",
        dead_letter_key: str = "values:dead_letter",
        pending_marker: str = "pending",
    ) -> None:
        self._redis = redis
        self._values_key = values_key
        self._status_key = status_key
        self._dead_letter_key = dead_letter_key
        self._pending_marker = pending_marker

    @classmethod
    def from_settings(cls, redis: Redis, settings: Settings) -> "RedisResultCache":
        return cls(
            redis,
            values_key=settings.values_key,
            status_key=settings.status_key,
            dead_letter_key=settings.dead_letter_key,
            pending_marker=settings.pending_marker,
        )

    async def set_pending(self, key: str) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._values_key, key, self._pending_marker)
            pipe.hset(self._status_key, key, STATUS_PENDING)
            await pipe.execute()

    async def set_value(self, key: str, value: int) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._values_key, key, str(value))
            pipe.hset(self._status_key, key, STATUS_COMPUTED)
            await pipe.execute()

    async def set_failed(self, key: str, *, payload: str, error: str, attempts: int) -> None:
        entry = json.dumps({"key": key, "payload": payload, "error": error, "attempts": attempts})
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._status_key, key, STATUS_FAILED)
            pipe.rpush(self._dead_letter_key, entry)
            await pipe.execute()

    async def add_dead_letter(self, *, payload: str, error: str, attempts: int) -> None:
        entry = json.dumps({"key": None, "payload": payload, "error": error, "attempts": attempts})
        await self._redis.rpush(self._dead_letter_key, entry)

    async def get_all(self) -> dict[str, str]:
        return await self._redis.hgetall(self._values_key)

    async def get_statuses(self) -> dict[str, str]:
        return await self._redis.hgetall(self._status_key)

    async def get_dead_letters(self) -> list[dict[str, Any]]:
        raw = await self._redis.lrange(self._dead_letter_key, 0, -1)
        return [json.loads(item) for item in raw]


class InMemoryResultCache:
    """Process-local result cache for tests and single-process runs."""

    def __init__(self, *, pending_marker: str = "pending") -> None:
        self.pending_marker = pending_marker
        self.values: dict[str, str] = {}
        self.statuses: dict[str, str] = {}
        self.dead_letters: list[dict[str, Any]] = []

    async def set_pending(self, key: str) -> None:
        self.values[key] = self.pending_marker
        self.statuses[key] = STATUS_PENDING

    async def set_value(self, key: str, value: int) -> None:
        self.values[key] = str(value)
        self.statuses[key] = STATUS_COMPUTED

    async def set_failed(self, key: str, *, payload: str, error: str, attempts: int) -> None:
        self.statuses[key] = STATUS_FAILED
        self.dead_letters.append({"key": key, "payload": payload, "error": error, "attempts": attempts})

    async def add_dead_letter(self, *, payload: str, error: str, attempts: int) -> None:
        self.dead_letters.append({"key": None, "payload": payload, "error": error, "attempts": attempts})

    async def get_all(self) -> dict[str, str]:
        return dict(self.values)

    async def get_statuses(self) -> dict[str, str]:
        return dict(self.statuses)

    async def get_dead_letters(self) -> list[dict[str, Any]]:
        return list(self.dead_letters)
