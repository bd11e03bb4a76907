"""Dashboard summary and weekly progress.

Both read models are recomputed from the store and cached in Redis for a
few seconds; progress writes and award scans delete the cached entries.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.auth.session import AuthUser
from ldash.config import get_settings
from ldash.dashboard.schemas import DashboardSummary
from ldash.db.models import Profile, UserBadge
from ldash.exceptions import store_guard
from ldash.progress.metrics import (
    compute_experience_points,
    compute_streak,
    count_completed,
    weekly_progress,
)
from ldash.progress.schemas import ProgressRecord, WeeklyBucket
from ldash.progress.store import ProgressStore

logger = structlog.get_logger()

SUMMARY_CACHE_KEY = "dashboard:summary:{user_id}"
WEEKLY_CACHE_KEY = "dashboard:weekly:{user_id}"


def display_name(full_name: str | None, email: str | None) -> str:
    """Profile name, else the email's local part, else "User"."""
    if full_name:
        return full_name
    if email:
        local_part = email.split("@")[0]
        if local_part:
            return local_part
    return "User"


async def _load_full_name(session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID) -> str | None:
    async with session_factory() as db:
        with store_guard("load_profile"):
            result = await db.execute(select(Profile.full_name).where(Profile.id == user_id))
            return result.scalar_one_or_none()


async def _load_progress(
    session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID
) -> list[ProgressRecord]:
    async with session_factory() as db:
        return await ProgressStore(db).get_progress(user_id)


async def _count_badges(session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID) -> int:
    async with session_factory() as db:
        with store_guard("count_badges"):
            result = await db.execute(
                select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user_id)
            )
            return result.scalar_one()


async def get_dashboard_summary(
    session_factory: async_sessionmaker[AsyncSession],
    redis: object | None,
    user: AuthUser,
) -> DashboardSummary:
    """Name, role, streak, XP, completed goals and badge count for the header."""
    cache_key = SUMMARY_CACHE_KEY.format(user_id=user.id)
    if redis is not None:
        cached = await redis.get(cache_key)  # type: ignore[union-attr]
        if cached:
            return DashboardSummary.model_validate_json(cached)

    full_name, records, badge_count = await asyncio.gather(
        _load_full_name(session_factory, user.id),
        _load_progress(session_factory, user.id),
        _count_badges(session_factory, user.id),
    )

    summary = DashboardSummary(
        name=display_name(full_name, user.email),
        role=user.role,
        learning_streak=compute_streak(records),
        xp_gained=compute_experience_points(records),
        goals_completed=count_completed(records),
        achievements=badge_count,
    )

    if redis is not None:
        await redis.setex(  # type: ignore[union-attr]
            cache_key, get_settings().dashboard_cache_ttl_seconds, summary.model_dump_json()
        )
    return summary


async def get_weekly_progress(
    db: AsyncSession,
    redis: object | None,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> list[WeeklyBucket]:
    """Seven weekly progress buckets for the progress chart."""
    cache_key = WEEKLY_CACHE_KEY.format(user_id=user_id)
    if redis is not None:
        cached = await redis.get(cache_key)  # type: ignore[union-attr]
        if cached:
            return [WeeklyBucket(**item) for item in json.loads(cached)]

    records = await ProgressStore(db).get_progress(user_id)
    buckets = weekly_progress(records, now)

    if redis is not None:
        await redis.setex(  # type: ignore[union-attr]
            cache_key,
            get_settings().dashboard_cache_ttl_seconds,
            json.dumps([b.model_dump() for b in buckets]),
        )
    return buckets
