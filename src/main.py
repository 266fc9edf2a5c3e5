from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from src.api.errors import register_exception_handlers
from src.api.router import router as api_router
from src.config import settings
from src.database import dispose_engine
from src.services.result_cache import RedisResultCache
from src.worker.dispatch import build_notification_bus

logger = logging.getLogger("fib.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared Redis client and hang the cache/bus handles off app.state."""

    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    app.state.result_cache = RedisResultCache.from_settings(redis, settings)
    app.state.notification_bus = build_notification_bus(redis, settings)
    logger.info("startup dispatch_mode=%s channel=%s", settings.dispatch_mode, settings.insert_channel)
    try:
        yield
    finally:
        await redis.aclose()
        await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(title="Fib Values API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        - If the caller provides X-Request-ID, we reuse it.
        - Otherwise we generate a UUID4.
        """

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(api_router)
    return app


app = create_app()
