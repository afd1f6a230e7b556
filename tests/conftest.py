"""
Pytest fixtures для тестов.

Предоставляет:
- clock: управляемые часы (каждый вызов +1 секунда, можно выставить время)
- storage: хранилище, параметризованное по backend'ам (memory, json, sql)
- memory_storage: только in-memory хранилище
- test_client: HTTP клиент для тестирования API endpoints
"""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from taskflow.api.dependencies import get_storage
from taskflow.main import app
from taskflow.repositories import JsonFileStorage, MemoryStorage, SqlStorage

# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """
    Часы для тестов.

    Каждый вызов возвращает текущее время и сдвигает его на step,
    поэтому последовательные записи всегда получают разные метки времени.
    """

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0), step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now

    def set(self, moment: datetime) -> None:
        """Следующий вызов вернёт moment."""
        self.current = moment


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def test_engine():
    """
    Async engine для тестовой БД (SQLite in-memory).

    StaticPool обеспечивает одно и то же соединение, что критично для
    in-memory БД (иначе данные теряются).
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(params=["memory", "json", "sql"])
async def storage(request, clock, tmp_path, test_engine):
    """
    Хранилище каждого backend'а: тест с этой фикстурой выполняется трижды.

    Все backend'ы обязаны вести себя одинаково.
    """
    if request.param == "memory":
        store = MemoryStorage(clock=clock)
    elif request.param == "json":
        store = JsonFileStorage(tmp_path / "data", clock=clock)
    else:
        store = SqlStorage(engine=test_engine, clock=clock)

    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def memory_storage(clock):
    store = MemoryStorage(clock=clock)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def test_client(memory_storage):
    """
    HTTP клиент для тестирования API endpoints.

    Вместо хранилища из lifespan используется memory_storage.
    ASGITransport не запускает lifespan, поэтому демо-данные не добавляются.
    """
    app.dependency_overrides[get_storage] = lambda: memory_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
