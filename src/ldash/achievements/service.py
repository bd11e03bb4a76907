"""Achievement aggregator producing the UserAchievements read model."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.achievements.schemas import Badge, Certificate, UserAchievements
from ldash.db.models import Certificate as CertificateRow
from ldash.db.models import UserBadge
from ldash.exceptions import store_guard
from ldash.progress.metrics import compute_experience_points, compute_streak, count_completed
from ldash.progress.schemas import ProgressRecord
from ldash.progress.store import ProgressStore


async def _load_badges(session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID) -> list[Badge]:
    async with session_factory() as db:
        with store_guard("load_badges"):
            result = await db.execute(
                select(UserBadge)
                .where(UserBadge.user_id == user_id)
                .order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
            )
            rows = result.scalars().all()
        return [Badge.model_validate(row) for row in rows]


async def _load_certificates(
    session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID
) -> list[Certificate]:
    async with session_factory() as db:
        with store_guard("load_certificates"):
            result = await db.execute(
                select(CertificateRow)
                .where(CertificateRow.user_id == user_id)
                .order_by(CertificateRow.earned_date.desc())
            )
            rows = result.scalars().all()
        return [Certificate.model_validate(row) for row in rows]


async def _load_progress(
    session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID
) -> list[ProgressRecord]:
    async with session_factory() as db:
        return await ProgressStore(db).get_progress(user_id)


def build_user_achievements(
    badges: list[Badge],
    certificates: list[Certificate],
    records: Sequence[ProgressRecord],
) -> UserAchievements:
    return UserAchievements(
        badges=badges,
        certificates=certificates,
        courses_completed=count_completed(records),
        streak_days=compute_streak(records),
        total_points=compute_experience_points(records),
        contributions=0,
    )


async def get_user_achievements(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
) -> UserAchievements:
    """Badges, certificates and progress metrics for one user.

    The three reads run concurrently on separate sessions. Any store
    failure propagates as StoreUnavailable.
    """
    badges, certificates, records = await asyncio.gather(
        _load_badges(session_factory, user_id),
        _load_certificates(session_factory, user_id),
        _load_progress(session_factory, user_id),
    )
    return build_user_achievements(badges, certificates, records)
