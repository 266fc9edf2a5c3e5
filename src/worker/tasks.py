from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from redis.asyncio import Redis

from src.config import settings
from src.services.result_cache import RedisResultCache, ResultCache
from src.worker.celery_app import COMPUTE_TASK_NAME, celery_app
from src.worker.compute import build_compute_worker


logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_result_cache() -> AsyncIterator[ResultCache]:
    # asyncio.run() gives every task a fresh loop, so the client lives and dies
    # with the task.
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    try:
        yield RedisResultCache.from_settings(redis, settings)
    finally:
        await redis.aclose()


async def _compute(payload: str) -> int | None:
    async with open_result_cache() as cache:
        worker = build_compute_worker(cache, settings)
        return await worker.handle(payload)


@celery_app.task(name=COMPUTE_TASK_NAME)
def compute_value(payload: str) -> None:
    """Compute the value for one queued index and store it in the result cache."""

    logger.info("compute_value received (payload=%s)", payload)
    asyncio.run(_compute(payload))
