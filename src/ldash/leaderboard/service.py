"""Leaderboard ranker.

Entries come back in the store's default profile ordering; nothing here
sorts by points or badges. Counts are store-side aggregates joined onto
the profile page.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.config import get_settings
from ldash.db.models import CourseProgress, Profile, UserBadge
from ldash.exceptions import StoreUnavailable, store_guard
from ldash.leaderboard.schemas import LeaderboardEntry

logger = structlog.get_logger()

ANONYMOUS = "Anonymous"


def clamp_limit(limit: int | None) -> int:
    settings = get_settings()
    if limit is None:
        return settings.leaderboard_default_limit
    return max(1, min(limit, settings.leaderboard_max_limit))


async def _badge_counts(db: AsyncSession, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    with store_guard("leaderboard_badge_counts"):
        result = await db.execute(
            select(UserBadge.user_id, func.count(UserBadge.id))
            .where(UserBadge.user_id.in_(user_ids))
            .group_by(UserBadge.user_id)
        )
        return {user_id: int(count or 0) for user_id, count in result.all()}


async def _point_totals(db: AsyncSession, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    with store_guard("leaderboard_points"):
        result = await db.execute(
            select(CourseProgress.user_id, func.sum(CourseProgress.progress_percentage))
            .where(CourseProgress.user_id.in_(user_ids))
            .group_by(CourseProgress.user_id)
        )
        return {user_id: int(total or 0) for user_id, total in result.all()}


async def get_leaderboard(db: AsyncSession, limit: int | None = None) -> list[LeaderboardEntry]:
    """Up to ``limit`` profiles with badge count and total points.

    A failed profile read propagates; failed aggregates degrade to zeros.
    """
    with store_guard("leaderboard_profiles"):
        result = await db.execute(select(Profile.id, Profile.username).limit(clamp_limit(limit)))
        profiles = result.all()

    if not profiles:
        return []

    user_ids = [row.id for row in profiles]
    try:
        badges = await _badge_counts(db, user_ids)
        points = await _point_totals(db, user_ids)
    except StoreUnavailable as exc:
        logger.warning("leaderboard_aggregates_unavailable", operation=exc.operation)
        badges, points = {}, {}

    return [
        LeaderboardEntry(
            user_id=row.id,
            username=row.username or ANONYMOUS,
            badge_count=badges.get(row.id, 0),
            points=points.get(row.id, 0),
        )
        for row in profiles
    ]
