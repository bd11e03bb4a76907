"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ldash.achievements.catalog import seed_badge_catalog
from ldash.achievements.router import router as achievements_router
from ldash.community.router import router as community_router
from ldash.config import get_settings
from ldash.courses.router import router as courses_router
from ldash.dashboard.router import router as dashboard_router
from ldash.database import close_db, get_session_factory, init_db
from ldash.health.router import router as health_router
from ldash.leaderboard.router import router as leaderboard_router
from ldash.middleware import setup_middleware
from ldash.progress.router import router as progress_router
from ldash.realtime.feed import ChangeFeed
from ldash.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


async def _log_change(payload: dict) -> None:
    logger.info("table_changed", table=payload.get("table"), event=payload.get("event"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed catalog badge definitions (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_badge_catalog(db)
    except Exception:
        logging.getLogger(__name__).warning("Badge catalog seeding failed (tables may not exist yet)", exc_info=True)

    feed: ChangeFeed | None = None
    if settings.realtime_enabled:
        feed = ChangeFeed(get_redis(), settings.realtime_tables, _log_change)
        try:
            await feed.start()
        except Exception:
            logger.warning("change_feed_unavailable", exc_info=True)
            feed = None
    app.state.change_feed = feed

    yield

    try:
        if feed is not None:
            await feed.stop()
    finally:
        await close_db()
        await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Learner Dashboard API",
        description="Progress, achievements and leaderboard backend for the learner dashboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progress_router)
    app.include_router(dashboard_router)
    app.include_router(achievements_router)
    app.include_router(leaderboard_router)
    app.include_router(courses_router)
    app.include_router(community_router)

    return app


app = create_app()
