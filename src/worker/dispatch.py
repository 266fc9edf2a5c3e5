from __future__ import annotations

import asyncio
import logging

from redis.asyncio import Redis

from src.config import Settings
from src.services.notification_bus import Handler, NotificationBus, RedisNotificationBus, Subscription
from src.worker.celery_app import COMPUTE_TASK_NAME, celery_app

logger = logging.getLogger(__name__)


class CeleryJobQueue:
    """Competing-consumers transport with the NotificationBus interface.

    publish() enqueues one compute task on the queue named after the channel;
    exactly one Celery worker takes it. Consumers are Celery workers, so
    subscribe() is not available here.
    """

    def __init__(self, *, app=celery_app, task_name: str = COMPUTE_TASK_NAME) -> None:
        self._app = app
        self._task_name = task_name

    async def publish(self, channel: str, message: str) -> int:
        # send_task talks to the broker synchronously.
        await asyncio.to_thread(
            self._app.send_task, self._task_name, args=[message], queue=channel
        )
        logger.debug("enqueued task=%s queue=%s message=%s", self._task_name, channel, message)
        return 1

    async def subscribe(self, channel: str, handler: Handler) -> Subscription:
        raise NotImplementedError("Queue consumers are Celery workers (celery -A src.worker.celery_app worker)")


def build_notification_bus(redis: Redis, settings: Settings) -> NotificationBus:
    if settings.dispatch_mode == "broadcast":
        return RedisNotificationBus(redis)
    return CeleryJobQueue()
