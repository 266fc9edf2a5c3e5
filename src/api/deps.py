from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, settings
from src.database import get_db
from src.services.dispatcher import DispatcherOptions, JobDispatcher
from src.services.notification_bus import NotificationBus
from src.services.result_cache import ResultCache
from src.services.value_store import DurableStore, SqlValueStore


def get_settings() -> Settings:
    return settings


def get_result_cache(request: Request) -> ResultCache:
    return request.app.state.result_cache


def get_notification_bus(request: Request) -> NotificationBus:
    return request.app.state.notification_bus


async def get_value_store(session: AsyncSession = Depends(get_db)) -> DurableStore:
    return SqlValueStore(session)


def get_dispatcher(
    store: DurableStore = Depends(get_value_store),
    cache: ResultCache = Depends(get_result_cache),
    bus: NotificationBus = Depends(get_notification_bus),
    app_settings: Settings = Depends(get_settings),
) -> JobDispatcher:
    return JobDispatcher(
        store=store,
        cache=cache,
        bus=bus,
        options=DispatcherOptions(
            channel=app_settings.insert_channel,
            max_index=app_settings.max_index,
        ),
    )
