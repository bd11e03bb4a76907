"""Shared test fixtures.

DB-backed tests run against a temporary SQLite file (aiosqlite) with the
schema created from the ORM metadata; Redis is an AsyncMock.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.auth.session import create_access_token
from ldash.database import close_db, get_engine, get_session_factory, init_db
from ldash.db.base import Base
from ldash.db.models import Course, CourseProgress, Profile
from ldash.dependencies import get_redis_dep
from ldash.main import create_app


@pytest_asyncio.fixture
async def db_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh SQLite database."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'ldash_test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory()
    await close_db()


@pytest.fixture
def enable_foreign_keys(db_factory) -> Callable[[], Awaitable[None]]:
    """Turn on SQLite foreign key enforcement, as Postgres always has it.

    Off by default so tests can seed rows pointing at missing parents.
    Call it after setup; sessions opened afterwards see enforcement.
    """

    def _pragma(dbapi_conn, _record) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async def _enable() -> None:
        engine = get_engine()
        event.listen(engine.sync_engine, "connect", _pragma)
        await engine.dispose()

    return _enable


@pytest_asyncio.fixture
async def db_session(db_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    async with db_factory() as session:
        yield session


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis stand-in: empty cache, publish/delete recorded."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=0)
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def make_profile(db_factory) -> Callable[..., Awaitable[uuid.UUID]]:
    async def _make(username: str | None = "learner", full_name: str | None = None) -> uuid.UUID:
        user_id = uuid.uuid4()
        async with db_factory() as db:
            db.add(Profile(id=user_id, username=username, full_name=full_name))
            await db.commit()
        return user_id

    return _make


@pytest.fixture
def make_course(db_factory) -> Callable[..., Awaitable[uuid.UUID]]:
    async def _make(title: str = "Intro to Biology", lessons_count: int = 4, field: str = "science") -> uuid.UUID:
        course_id = uuid.uuid4()
        async with db_factory() as db:
            db.add(Course(id=course_id, title=title, lessons_count=lessons_count, field=field, level="beginner"))
            await db.commit()
        return course_id

    return _make


@pytest.fixture
def make_progress(db_factory) -> Callable[..., Awaitable[None]]:
    """Insert a progress row directly, bypassing the store's guard."""

    async def _make(
        user_id: uuid.UUID,
        course_id: uuid.UUID,
        percentage: int,
        last_accessed: datetime | None = None,
    ) -> None:
        async with db_factory() as db:
            db.add(
                CourseProgress(
                    user_id=user_id,
                    course_id=course_id,
                    progress_percentage=percentage,
                    completed=percentage == 100,
                    last_accessed=last_accessed or datetime.now(timezone.utc),
                )
            )
            await db.commit()

    return _make


@pytest_asyncio.fixture
async def user_id(make_profile) -> uuid.UUID:
    return await make_profile(username="ada", full_name="Ada Lovelace")


@pytest_asyncio.fixture
async def client(db_factory, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client over the app, wired to the test database and mock Redis."""
    app = create_app()
    app.dependency_overrides[get_redis_dep] = lambda: mock_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user_id: uuid.UUID) -> AsyncClient:
    token = create_access_token(user_id, email="ada@example.com", role="student")
    client.headers["Authorization"] = f"Bearer {token}"
    return client
