# tests/conftest.py

"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from dontdrop.api.deps import get_leaderboard_service
from dontdrop.db.session import create_tables
from dontdrop.main import app
from dontdrop.schemas.announcement import AnnouncementPayload
from dontdrop.services.announcements import AsyncioAnnouncementScheduler
from dontdrop.services.leaderboard_service import LeaderboardService
from dontdrop.store.base import RankingStore
from dontdrop.store.memory import MemoryRankingStore
from dontdrop.store.sql import SqlRankingStore
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine


class RecordingPublisher:
    """Announcement publisher that remembers what it was given."""

    def __init__(self) -> None:
        self.published: list[AnnouncementPayload] = []

    async def __call__(self, payload: AnnouncementPayload) -> None:
        self.published.append(payload)


async def make_sql_store(tmp_path) -> SqlRankingStore:
    """A SQL store on a fresh SQLite file, so every connection sees one database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'leaderboard.db'}")
    await create_tables(engine)
    return SqlRankingStore(engine)


@pytest.fixture
def memory_store() -> MemoryRankingStore:
    return MemoryRankingStore()


@pytest.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlRankingStore, None]:
    store = await make_sql_store(tmp_path)
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sql"])
async def store(request, tmp_path) -> AsyncGenerator[RankingStore, None]:
    """Runs the test once against each store backend."""
    if request.param == "memory":
        yield MemoryRankingStore()
        return
    sql = await make_sql_store(tmp_path)
    yield sql
    await sql.close()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
async def scheduler(
    publisher: RecordingPublisher,
) -> AsyncGenerator[AsyncioAnnouncementScheduler, None]:
    scheduler = AsyncioAnnouncementScheduler(publisher=publisher)
    yield scheduler
    await scheduler.stop()


@pytest.fixture
def service(
    store: RankingStore, scheduler: AsyncioAnnouncementScheduler
) -> LeaderboardService:
    return LeaderboardService(store=store, scheduler=scheduler)


@pytest.fixture
def api_service(memory_store: MemoryRankingStore) -> LeaderboardService:
    """Service behind the API tests; announcements are not scheduled."""
    return LeaderboardService(store=memory_store)


@pytest.fixture
async def async_client(
    api_service: LeaderboardService,
) -> AsyncGenerator[AsyncClient, None]:
    """Fixture to provide an async test client for the API."""
    app.dependency_overrides[get_leaderboard_service] = lambda: api_service

    transport = ASGITransport(app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clean up the override after the test
    del app.dependency_overrides[get_leaderboard_service]
