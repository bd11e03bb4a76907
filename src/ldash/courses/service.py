"""Course catalog, enrollment and lesson completion."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.achievements.schemas import Certificate
from ldash.courses.schemas import CourseDetailResponse, CourseResponse
from ldash.db.models import Certificate as CertificateRow
from ldash.db.models import Course
from ldash.exceptions import store_guard
from ldash.progress.metrics import lesson_progress_percentage
from ldash.progress.schemas import ProgressRecord
from ldash.progress.store import ProgressStore


async def list_courses(db: AsyncSession, field: str | None = None) -> list[CourseResponse]:
    query = select(Course).order_by(Course.title)
    if field:
        query = query.where(Course.field == field)
    with store_guard("list_courses"):
        result = await db.execute(query)
        rows = result.scalars().all()
    return [CourseResponse.model_validate(row) for row in rows]


async def get_course(db: AsyncSession, course_id: uuid.UUID) -> CourseResponse | None:
    with store_guard("get_course"):
        result = await db.execute(select(Course).where(Course.id == course_id))
        row = result.scalar_one_or_none()
    return CourseResponse.model_validate(row) if row is not None else None


async def get_course_detail(
    db: AsyncSession, user_id: uuid.UUID, course: CourseResponse
) -> CourseDetailResponse:
    progress = await ProgressStore(db).get_progress(user_id, course.id)
    with store_guard("get_certificate"):
        result = await db.execute(
            select(CertificateRow).where(
                CertificateRow.user_id == user_id,
                CertificateRow.course_id == course.id,
            )
        )
        certificate_row = result.scalar_one_or_none()

    return CourseDetailResponse(
        course=course,
        progress=progress,
        is_enrolled=progress is not None,
        has_completed=progress is not None and progress.completed,
        certificate=Certificate.model_validate(certificate_row) if certificate_row is not None else None,
    )


async def enroll(db: AsyncSession, user_id: uuid.UUID, course_id: uuid.UUID) -> ProgressRecord | None:
    """Create the progress record at 0%. Re-enrolling never lowers progress."""
    store = ProgressStore(db)
    existing = await store.get_progress(user_id, course_id)
    if existing is not None:
        return existing
    await store.upsert_progress(user_id, course_id, 0, 0)
    return await store.get_progress(user_id, course_id)


async def complete_lesson(
    db: AsyncSession,
    user_id: uuid.UUID,
    course: CourseResponse,
    lesson_index: int,
) -> ProgressRecord | None:
    """Record lesson completion; the percentage follows from the lesson position.

    Raises ValueError for an index outside the course.
    """
    if lesson_index >= course.lessons_count:
        raise ValueError(f"lesson_index {lesson_index} out of range for {course.lessons_count} lessons")
    percentage = lesson_progress_percentage(lesson_index, course.lessons_count)
    store = ProgressStore(db)
    await store.upsert_progress(user_id, course.id, percentage, lesson_index)
    return await store.get_progress(user_id, course.id)
