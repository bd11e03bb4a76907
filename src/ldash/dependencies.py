"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.database import get_session as _get_session
from ldash.database import get_session_factory as _get_session_factory
from ldash.redis_client import get_redis_or_none as _get_redis_or_none

get_db = _get_session


def get_db_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for endpoints that fan reads out over several sessions."""
    return _get_session_factory()


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client (or None) as a FastAPI dependency."""
    yield _get_redis_or_none()
