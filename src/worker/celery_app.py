from __future__ import annotations

from celery import Celery

from src.config import settings


COMPUTE_TASK_NAME = "fib.compute_value"


def make_celery() -> Celery:
    """Create the Celery app.

    Note: kept in a function so tests can import tasks without eagerly
    touching global state beyond settings.
    """

    celery = Celery(
        "fib",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["src.worker.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        # One logical queue, named after the notification channel. Workers
        # compete for its messages instead of each receiving a copy.
        task_default_queue=settings.insert_channel,
        # At-least-once: ack after the task ran, requeue if the worker dies,
        # and hand out one message at a time.
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        broker_transport_options={"visibility_timeout": settings.queue_visibility_timeout},
        task_ignore_result=True,
    )

    return celery


celery_app = make_celery()
