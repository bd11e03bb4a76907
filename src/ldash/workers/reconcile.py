"""arq worker that periodically re-runs award scans.

Import path for arq CLI: arq ldash.workers.reconcile.WorkerSettings

Every user with a completed course is rescanned, so badges for completions
nobody looked at and certificates that failed to issue converge without a
dashboard visit.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy import select

from ldash.achievements.award_engine import run_award_scan
from ldash.config import get_settings
from ldash.database import close_db, get_session_factory, init_db
from ldash.db.models import CourseProgress
from ldash.middleware.logging import setup_logging
from ldash.progress.store import COMPLETE

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB and Redis connections on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    logger.info("Reconcile worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Reconcile worker shut down")


async def reconcile_awards(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scan every user with at least one completed course. Returns users scanned."""
    session_factory = get_session_factory()
    async with session_factory() as db:
        result = await db.execute(
            select(CourseProgress.user_id)
            .where(CourseProgress.progress_percentage >= COMPLETE)
            .distinct()
        )
        user_ids = list(result.scalars().all())

    minted = 0
    for user_id in user_ids:
        report = await run_award_scan(session_factory, ctx.get("redis"), user_id)
        if report is not None and report.changed:
            minted += 1

    logger.info("Reconciled awards for %d users (%d changed)", len(user_ids), minted)
    return len(user_ids)


class WorkerSettings:
    """arq worker settings for award reconciliation."""

    functions = [reconcile_awards]
    cron_jobs = [
        cron(reconcile_awards, minute=set(get_settings().reconcile_cron_minutes), run_at_startup=False),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 1
