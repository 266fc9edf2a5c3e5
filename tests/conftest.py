import pytest

from src.api.deps import get_dispatcher
from src.main import app
from src.services.dispatcher import JobDispatcher
from src.services.notification_bus import InMemoryNotificationBus
from src.services.result_cache import InMemoryResultCache
from src.services.value_store import InMemoryValueStore
from src.worker.compute import ComputeWorker, RetryPolicy
from src.worker.workloads import iterative_fib


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def cache() -> InMemoryResultCache:
    return InMemoryResultCache()


@pytest.fixture()
def bus() -> InMemoryNotificationBus:
    return InMemoryNotificationBus()


@pytest.fixture()
def store() -> InMemoryValueStore:
    return InMemoryValueStore()


@pytest.fixture()
def dispatcher(store, cache, bus) -> JobDispatcher:
    return JobDispatcher(store=store, cache=cache, bus=bus)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def make_worker(cache, sleeps):
    """Build a worker on the shared in-memory cache that records backoff sleeps."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    def _make(
        workload=iterative_fib, retry: RetryPolicy | None = None, max_index: int | None = None
    ) -> ComputeWorker:
        return ComputeWorker(
            cache=cache, workload=workload, retry=retry, max_index=max_index, sleep=_sleep
        )

    return _make


@pytest.fixture()
def api_dispatcher(dispatcher):
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield dispatcher
    app.dependency_overrides.pop(get_dispatcher, None)
