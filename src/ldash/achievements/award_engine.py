"""Award engine — mints course badges, certificates and catalog badges.

Each row is committed on its own. The unique constraints on user_badges and
certificates make a concurrent duplicate fail with a unique violation, which is
rolled back and counted as a duplicate rather than an error. Any other
integrity failure (a missing profile or course) is reported as an error.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.achievements.catalog import CATALOG_SOURCE, eligible_badges, load_catalog
from ldash.achievements.detector import COURSE_SOURCE, AwardCandidate, find_award_worklist
from ldash.achievements.notifications import (
    invalidate_read_models,
    publish_badge_earned,
    push_user_notification,
)
from ldash.achievements.schemas import AwardReport, BadgeCategory, BadgeTier
from ldash.config import get_settings
from ldash.db.models import Certificate, Course, UserBadge, utcnow
from ldash.exceptions import IntegrityViolation, StoreUnavailable, is_unique_violation, store_guard
from ldash.progress.schemas import ProgressRecord
from ldash.progress.store import ProgressStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class _CourseRef:
    id: uuid.UUID
    title: str


def course_badge_values(user_id: uuid.UUID, course: _CourseRef) -> dict:
    image_base = get_settings().badge_image_base_url
    return {
        "user_id": user_id,
        "name": f"{course.title} Completion",
        "description": f"Completed the {course.title} course",
        "image_url": f"{image_base}?seed={course.title}",
        "tier": BadgeTier.GOLD.value,
        "category": BadgeCategory.COURSE.value,
        "source_type": COURSE_SOURCE,
        "source_id": str(course.id),
        "earned_at": utcnow(),
    }


def certificate_values(user_id: uuid.UUID, course: _CourseRef) -> dict:
    return {
        "user_id": user_id,
        "course_id": course.id,
        "name": course.title,
        "description": f"Successfully completed {course.title} with a score of 100%",
        "earned_date": utcnow(),
        "download_url": f"/certificates/{course.id}.pdf",
    }


class AwardEngine:
    """Runs one award scan for one user."""

    def __init__(self, db: AsyncSession, redis: object | None) -> None:
        self.db = db
        self.redis = redis

    async def _commit_new(self, row: object, operation: str) -> bool:
        """Insert and commit one row. False when a unique constraint rejects it.

        Raises IntegrityViolation for foreign key or check failures.
        """
        self.db.add(row)
        try:
            with store_guard(operation):
                await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if is_unique_violation(exc):
                return False
            raise IntegrityViolation(operation) from exc
        except StoreUnavailable:
            await self.db.rollback()
            raise
        return True

    async def _load_courses(self, course_ids: list[uuid.UUID]) -> dict[uuid.UUID, _CourseRef]:
        if not course_ids:
            return {}
        with store_guard("load_courses"):
            result = await self.db.execute(
                select(Course.id, Course.title).where(Course.id.in_(course_ids))
            )
            return {row.id: _CourseRef(row.id, row.title) for row in result}

    async def scan(self, user_id: uuid.UUID) -> AwardReport:
        """Detect completions and mint whatever is missing.

        Store failures on individual rows are recorded in the report and
        the scan moves on; a failure reading progress propagates.
        """
        report = AwardReport(user_id=user_id)

        records = await ProgressStore(self.db).get_progress(user_id)
        worklist = await find_award_worklist(self.db, user_id, records)
        courses = await self._load_courses([c.course_id for c in worklist])

        for candidate in worklist:
            course = courses.get(candidate.course_id)
            if course is None:
                logger.warning("award_course_missing", user_id=str(user_id), course_id=str(candidate.course_id))
                report.skipped.append(candidate.course_id)
                continue
            await self._award_course(user_id, candidate, course, report)

        await self._award_catalog(user_id, records, report)

        if report.changed:
            await invalidate_read_models(self.redis, user_id)

        logger.info(
            "award_scan_complete",
            user_id=str(user_id),
            badges=len(report.badges_minted),
            certificates=len(report.certificates_issued),
            duplicates=len(report.duplicates),
            errors=len(report.errors),
        )
        return report

    async def _award_course(
        self,
        user_id: uuid.UUID,
        candidate: AwardCandidate,
        course: _CourseRef,
        report: AwardReport,
    ) -> None:
        if candidate.needs_badge:
            values = course_badge_values(user_id, course)
            try:
                minted = await self._commit_new(UserBadge(**values), "mint_course_badge")
            except (StoreUnavailable, IntegrityViolation) as exc:
                logger.error("badge_mint_failed", user_id=str(user_id), course_id=str(course.id))
                report.errors.append(f"{course.id}: {exc.message}")
                return

            if not minted:
                # A concurrent scan won; it also owns the certificate.
                report.duplicates.append(values["name"])
                return

            report.badges_minted.append(values["name"])
            logger.info("badge_minted", user_id=str(user_id), badge=values["name"])
            await push_user_notification(
                self.redis,
                user_id,
                "badge_earned",
                "New badge earned",
                f"You've earned a new badge for completing {course.title}!",
                action_url="/achievements",
            )
            await publish_badge_earned(self.redis, user_id, values["name"], values["tier"], values["category"])

        if candidate.needs_certificate:
            await self._issue_certificate(user_id, course, report)

    async def _issue_certificate(self, user_id: uuid.UUID, course: _CourseRef, report: AwardReport) -> None:
        try:
            issued = await self._commit_new(
                Certificate(id=uuid.uuid4(), **certificate_values(user_id, course)),
                "issue_certificate",
            )
        except (StoreUnavailable, IntegrityViolation):
            logger.error("certificate_missing", user_id=str(user_id), course_id=str(course.id))
            report.missing_certificates.append(course.id)
            return

        if issued:
            report.certificates_issued.append(course.id)
            logger.info("certificate_issued", user_id=str(user_id), course_id=str(course.id))

    async def _award_catalog(self, user_id: uuid.UUID, records: list[ProgressRecord], report: AwardReport) -> None:
        try:
            with store_guard("load_catalog"):
                definitions = await load_catalog(self.db)
                result = await self.db.execute(
                    select(UserBadge.source_id).where(
                        UserBadge.user_id == user_id,
                        UserBadge.source_type == CATALOG_SOURCE,
                    )
                )
                earned = set(result.scalars().all())
        except StoreUnavailable as exc:
            report.errors.append(exc.message)
            return

        for definition in eligible_badges(definitions, records):
            if definition.slug in earned:
                continue
            row = UserBadge(
                user_id=user_id,
                badge_id=definition.id,
                name=definition.name,
                description=definition.description,
                image_url=definition.image_url,
                tier=definition.tier,
                category=definition.category,
                source_type=CATALOG_SOURCE,
                source_id=definition.slug,
                earned_at=utcnow(),
            )
            try:
                minted = await self._commit_new(row, "mint_catalog_badge")
            except (StoreUnavailable, IntegrityViolation) as exc:
                report.errors.append(f"{definition.slug}: {exc.message}")
                continue

            if not minted:
                report.duplicates.append(definition.name)
                continue

            report.badges_minted.append(definition.name)
            logger.info("badge_minted", user_id=str(user_id), badge=definition.slug)
            await push_user_notification(
                self.redis,
                user_id,
                "badge_earned",
                f'Badge Earned: "{definition.name}"',
                definition.description,
                action_url="/achievements",
            )
            await publish_badge_earned(self.redis, user_id, definition.name, definition.tier, definition.category)


async def run_award_scan(
    session_factory: async_sessionmaker[AsyncSession],
    redis: object | None,
    user_id: uuid.UUID,
) -> AwardReport | None:
    """Background-task entry point: a scan in its own session, errors logged."""
    async with session_factory() as db:
        try:
            return await AwardEngine(db, redis).scan(user_id)
        except StoreUnavailable:
            logger.exception("award_scan_failed", user_id=str(user_id))
            return None
