"""Badge catalog: milestone, streak and achievement badges awarded by threshold.

Course-completion badges are minted per course by the award engine; the
badges here are shared definitions seeded into the ``badges`` table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.config import get_settings
from ldash.db.dialect import upsert_insert
from ldash.db.models import BadgeDefinition
from ldash.progress.metrics import compute_experience_points, compute_streak, count_completed
from ldash.progress.schemas import ProgressRecord

logger = logging.getLogger(__name__)

CATALOG_SOURCE = "badge"

BADGE_CATALOG: list[dict] = [
    # Milestones
    {
        "slug": "first_course",
        "name": "First Steps",
        "description": "Complete your first course",
        "tier": "bronze",
        "category": "milestone",
        "trigger_type": "courses_completed",
        "threshold": 1,
        "sort_order": 1,
    },
    {
        "slug": "five_courses",
        "name": "Dedicated Learner",
        "description": "Complete five courses",
        "tier": "silver",
        "category": "milestone",
        "trigger_type": "courses_completed",
        "threshold": 5,
        "sort_order": 2,
    },
    {
        "slug": "ten_courses",
        "name": "Scholar",
        "description": "Complete ten courses",
        "tier": "gold",
        "category": "milestone",
        "trigger_type": "courses_completed",
        "threshold": 10,
        "sort_order": 3,
    },
    # Streaks
    {
        "slug": "streak_7",
        "name": "Week Warrior",
        "description": "Reach a 7-day learning streak",
        "tier": "bronze",
        "category": "streak",
        "trigger_type": "streak_days",
        "threshold": 7,
        "sort_order": 4,
    },
    {
        "slug": "streak_30",
        "name": "Unstoppable",
        "description": "Reach a 30-day learning streak",
        "tier": "gold",
        "category": "streak",
        "trigger_type": "streak_days",
        "threshold": 30,
        "sort_order": 5,
    },
    # Points
    {
        "slug": "points_500",
        "name": "Rising Star",
        "description": "Earn 500 experience points",
        "tier": "silver",
        "category": "achievement",
        "trigger_type": "total_points",
        "threshold": 500,
        "sort_order": 6,
    },
    {
        "slug": "points_1000",
        "name": "Knowledge Seeker",
        "description": "Earn 1,000 experience points",
        "tier": "gold",
        "category": "achievement",
        "trigger_type": "total_points",
        "threshold": 1000,
        "sort_order": 7,
    },
]

TRIGGER_METRICS: dict[str, Callable[[Sequence[ProgressRecord]], int]] = {
    "courses_completed": count_completed,
    "streak_days": compute_streak,
    "total_points": compute_experience_points,
}


@dataclass(frozen=True)
class CatalogBadge:
    """Detached copy of a catalog row, safe to use across commits."""

    id: int
    slug: str
    name: str
    description: str
    image_url: str | None
    tier: str
    category: str
    trigger_type: str
    threshold: int

    @classmethod
    def from_row(cls, row: BadgeDefinition) -> CatalogBadge:
        return cls(
            id=row.id,
            slug=row.slug,
            name=row.name,
            description=row.description,
            image_url=row.image_url,
            tier=row.tier,
            category=row.category,
            trigger_type=row.trigger_type,
            threshold=row.threshold,
        )


def eligible_badges(
    definitions: Sequence[CatalogBadge],
    records: Sequence[ProgressRecord],
) -> list[CatalogBadge]:
    """Catalog badges whose trigger metric has reached its threshold."""
    eligible = []
    for definition in definitions:
        metric = TRIGGER_METRICS.get(definition.trigger_type)
        if metric is None:
            logger.warning("Unknown badge trigger type %r on %s", definition.trigger_type, definition.slug)
            continue
        if metric(records) >= definition.threshold:
            eligible.append(definition)
    return eligible


async def load_catalog(db: AsyncSession) -> list[CatalogBadge]:
    """Active catalog badges in display order."""
    result = await db.execute(
        select(BadgeDefinition)
        .where(BadgeDefinition.is_active.is_(True))
        .order_by(BadgeDefinition.sort_order)
    )
    return [CatalogBadge.from_row(row) for row in result.scalars()]


async def seed_badge_catalog(db: AsyncSession) -> int:
    """Upsert all catalog badge definitions. Returns number of badges seeded."""
    image_base = get_settings().badge_image_base_url
    seeded = 0
    for badge_data in BADGE_CATALOG:
        values = {**badge_data, "image_url": f"{image_base}?seed={badge_data['slug']}"}
        stmt = upsert_insert(db, BadgeDefinition).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["slug"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "image_url": stmt.excluded.image_url,
                "tier": stmt.excluded.tier,
                "category": stmt.excluded.category,
                "trigger_type": stmt.excluded.trigger_type,
                "threshold": stmt.excluded.threshold,
                "sort_order": stmt.excluded.sort_order,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d catalog badge definitions", seeded)
    return seeded
