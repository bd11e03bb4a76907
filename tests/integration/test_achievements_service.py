"""Achievement aggregator read model."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ldash.achievements.schemas import BadgeCategory, BadgeTier
from ldash.achievements.service import get_user_achievements
from ldash.db.models import Certificate, UserBadge


@pytest.mark.asyncio
async def test_empty_user(db_factory, user_id) -> None:
    achievements = await get_user_achievements(db_factory, user_id)
    assert achievements.badges == []
    assert achievements.certificates == []
    assert achievements.courses_completed == 0
    assert achievements.streak_days == 0
    assert achievements.total_points == 0
    assert achievements.contributions == 0


@pytest.mark.asyncio
async def test_metrics_from_progress(db_factory, user_id, make_course, make_progress) -> None:
    await make_progress(user_id, await make_course("A"), 100)
    await make_progress(user_id, await make_course("B"), 60)

    achievements = await get_user_achievements(db_factory, user_id)
    assert achievements.courses_completed == 1
    assert achievements.streak_days == 2
    assert achievements.total_points == 160


@pytest.mark.asyncio
async def test_badges_newest_first_and_anomalies_recovered(db_session, db_factory, user_id) -> None:
    now = datetime.now(timezone.utc)
    db_session.add_all([
        UserBadge(
            user_id=user_id, name="Old", tier="gold", category="course",
            source_type="course", source_id="a", earned_at=now - timedelta(days=2),
        ),
        UserBadge(
            user_id=user_id, name="New", tier="Platinum", category="social",
            source_type="badge", source_id="b", earned_at=now,
        ),
    ])
    await db_session.commit()

    badges = (await get_user_achievements(db_factory, user_id)).badges
    assert [b.name for b in badges] == ["New", "Old"]
    assert badges[0].tier is BadgeTier.BRONZE
    assert badges[0].category is BadgeCategory.ACHIEVEMENT
    assert badges[1].tier is BadgeTier.GOLD


@pytest.mark.asyncio
async def test_certificates_newest_first(db_session, db_factory, user_id, make_course) -> None:
    now = datetime.now(timezone.utc)
    first, second = await make_course("First"), await make_course("Second")
    db_session.add_all([
        Certificate(user_id=user_id, course_id=first, name="First", earned_date=now - timedelta(days=5)),
        Certificate(user_id=user_id, course_id=second, name="Second", earned_date=now),
    ])
    await db_session.commit()

    certificates = (await get_user_achievements(db_factory, user_id)).certificates
    assert [c.name for c in certificates] == ["Second", "First"]
