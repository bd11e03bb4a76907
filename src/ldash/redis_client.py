"""Shared Redis client for the dashboard cache, user notifications and the change feed.

The API keeps one client for the whole process. Routes reach it through
``get_redis_or_none`` so a deployment without Redis still serves reads,
only without caching and push notifications.
"""

import redis.asyncio as redis
import structlog

from ldash.config import get_settings

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str) -> redis.Redis:
    global _client  # noqa: PLW0603
    settings = get_settings()
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )
    logger.info("redis_client_ready", max_connections=settings.redis_max_connections)
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    client, _client = _client, None
    if client is not None:
        await client.aclose()


def get_redis() -> redis.Redis:
    """The live client. Health checks use this to report a missing Redis as an error."""
    if _client is None:
        raise RuntimeError("Redis client is not initialised; the app lifespan has not run")
    return _client


def get_redis_or_none() -> redis.Redis | None:
    return _client
