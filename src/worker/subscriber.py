"""Broadcast-mode worker process.

Subscribes to the Redis `insert` channel and computes every index published
there. Run one per worker container: python -m src.worker.subscriber
Every running subscriber computes every message; a message published while no
subscriber is connected is never computed.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from redis.asyncio import Redis

from src.config import Settings, settings
from src.services.notification_bus import RedisNotificationBus
from src.services.result_cache import RedisResultCache
from src.worker.compute import build_compute_worker

logger = logging.getLogger("fib.worker")


async def serve(settings: Settings, stop: asyncio.Event | None = None) -> None:
    stop = stop or asyncio.Event()
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    try:
        cache = RedisResultCache.from_settings(redis, settings)
        worker = build_compute_worker(cache, settings)
        subscription = await RedisNotificationBus(redis).subscribe(settings.insert_channel, worker.handle)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        logger.info("worker_ready channel=%s workload=%s", settings.insert_channel, settings.workload)
        try:
            await stop.wait()
        finally:
            await subscription.close()
    finally:
        await redis.aclose()
    logger.info("worker_stopped")


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
