"""Progress store adapter — typed read/write access to course_progress."""

from __future__ import annotations

import uuid
from typing import overload

import structlog
from sqlalchemy import case, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.config import get_settings
from ldash.db.dialect import upsert_insert
from ldash.db.models import CourseProgress, utcnow
from ldash.exceptions import IntegrityViolation, store_guard
from ldash.progress.schemas import ProgressRecord

logger = structlog.get_logger()

COMPLETE = 100


class ProgressStore:
    """Reads and writes progress records through one session."""

    def __init__(self, db: AsyncSession, enforce_monotonic: bool | None = None) -> None:
        self.db = db
        if enforce_monotonic is None:
            enforce_monotonic = get_settings().enforce_monotonic_progress
        self.enforce_monotonic = enforce_monotonic

    @overload
    async def get_progress(self, user_id: uuid.UUID) -> list[ProgressRecord]: ...

    @overload
    async def get_progress(self, user_id: uuid.UUID, course_id: uuid.UUID) -> ProgressRecord | None: ...

    async def get_progress(
        self,
        user_id: uuid.UUID,
        course_id: uuid.UUID | None = None,
    ) -> list[ProgressRecord] | ProgressRecord | None:
        """All of a user's records, or the single record for one course.

        A missing single record is None, not an error.
        """
        query = (
            select(CourseProgress)
            .where(CourseProgress.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if course_id is not None:
            query = query.where(CourseProgress.course_id == course_id)

        with store_guard("get_progress"):
            result = await self.db.execute(query)
            rows = result.scalars().all()

        if course_id is not None:
            return ProgressRecord.model_validate(rows[0]) if rows else None
        return [ProgressRecord.model_validate(row) for row in rows]

    async def get_completed(self, user_id: uuid.UUID) -> list[ProgressRecord]:
        """Records at 100%."""
        with store_guard("get_completed"):
            result = await self.db.execute(
                select(CourseProgress)
                .where(
                    CourseProgress.user_id == user_id,
                    CourseProgress.progress_percentage >= COMPLETE,
                )
                .execution_options(populate_existing=True)
            )
            rows = result.scalars().all()
        return [ProgressRecord.model_validate(row) for row in rows]

    async def upsert_progress(
        self,
        user_id: uuid.UUID,
        course_id: uuid.UUID,
        percentage: int,
        lesson_index: int | None = None,
    ) -> None:
        """Create or replace the record for (user_id, course_id).

        ``completed`` always mirrors ``percentage == 100`` and
        ``last_accessed`` is refreshed. With the monotonic guard on, a
        lower percentage never overwrites a higher stored one. An omitted
        ``lesson_index`` keeps the stored index. Raises IntegrityViolation
        when the user or course row does not exist.
        """
        if not 0 <= percentage <= COMPLETE:
            raise ValueError(f"percentage must be within 0..100, got {percentage}")
        if lesson_index is not None and lesson_index < 0:
            raise ValueError(f"lesson_index must be >= 0, got {lesson_index}")

        if self.enforce_monotonic:
            existing = await self.get_progress(user_id, course_id)
            if existing is not None and existing.progress_percentage > percentage:
                logger.warning(
                    "progress_regression_ignored",
                    user_id=str(user_id),
                    course_id=str(course_id),
                    stored=existing.progress_percentage,
                    attempted=percentage,
                )

        stmt = upsert_insert(self.db, CourseProgress).values(
            user_id=user_id,
            course_id=course_id,
            progress_percentage=percentage,
            completed=percentage == COMPLETE,
            last_accessed=utcnow(),
            current_lesson_index=lesson_index or 0,
        )

        incoming = stmt.excluded.progress_percentage
        if self.enforce_monotonic:
            kept = case(
                (CourseProgress.progress_percentage > incoming, CourseProgress.progress_percentage),
                else_=incoming,
            )
        else:
            kept = incoming

        set_ = {
            "progress_percentage": kept,
            "completed": kept == COMPLETE,
            "last_accessed": stmt.excluded.last_accessed,
        }
        if lesson_index is not None:
            set_["current_lesson_index"] = stmt.excluded.current_lesson_index

        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "course_id"], set_=set_)

        try:
            with store_guard("upsert_progress"):
                await self.db.execute(stmt)
                await self.db.commit()
        except IntegrityError as exc:
            # Conflicts on the key are absorbed by the upsert; this is a missing profile or course.
            await self.db.rollback()
            raise IntegrityViolation("upsert_progress") from exc
