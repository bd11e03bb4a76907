"""Catalog badge eligibility."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from ldash.achievements.catalog import BADGE_CATALOG, CatalogBadge, eligible_badges
from ldash.progress.schemas import ProgressRecord

USER = uuid.uuid4()


def _definitions() -> list[CatalogBadge]:
    return [
        CatalogBadge(
            id=i,
            slug=b["slug"],
            name=b["name"],
            description=b["description"],
            image_url=None,
            tier=b["tier"],
            category=b["category"],
            trigger_type=b["trigger_type"],
            threshold=b["threshold"],
        )
        for i, b in enumerate(BADGE_CATALOG, start=1)
    ]


def _records(*percentages: int) -> list[ProgressRecord]:
    return [
        ProgressRecord(
            user_id=USER,
            course_id=uuid.uuid4(),
            progress_percentage=p,
            completed=p == 100,
            last_accessed=datetime.now(timezone.utc),
        )
        for p in percentages
    ]


def test_no_progress_earns_nothing() -> None:
    assert eligible_badges(_definitions(), []) == []


def test_first_completion_earns_first_steps() -> None:
    slugs = {b.slug for b in eligible_badges(_definitions(), _records(100, 40))}
    assert slugs == {"first_course"}


def test_points_and_streak_thresholds() -> None:
    slugs = {b.slug for b in eligible_badges(_definitions(), _records(*([100] * 5 + [50] * 3)))}
    # 8 records, 5 completed, 650 points
    assert slugs == {"first_course", "five_courses", "streak_7", "points_500"}


def test_unknown_trigger_is_ignored() -> None:
    odd = CatalogBadge(1, "odd", "Odd", "", None, "gold", "milestone", "forum_posts", 1)
    assert eligible_badges([odd], _records(100)) == []


def test_catalog_slugs_are_unique() -> None:
    slugs = [b["slug"] for b in BADGE_CATALOG]
    assert len(slugs) == len(set(slugs))
