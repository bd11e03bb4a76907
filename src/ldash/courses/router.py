"""Course catalog endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.achievements.notifications import invalidate_read_models
from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.courses.schemas import CourseDetailResponse, CourseResponse
from ldash.courses.service import complete_lesson, enroll, get_course, get_course_detail, list_courses
from ldash.dependencies import get_db, get_redis_dep
from ldash.progress.schemas import ProgressRecord

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"])


async def _require_course(course_id: uuid.UUID, db: AsyncSession) -> CourseResponse:
    course = await get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.get("", response_model=list[CourseResponse])
async def courses(
    field: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[CourseResponse]:
    return await list_courses(db, field)


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def course_detail(
    course_id: uuid.UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CourseDetailResponse:
    course = await _require_course(course_id, db)
    return await get_course_detail(db, user.id, course)


@router.post("/{course_id}/enroll", response_model=ProgressRecord)
async def enroll_in_course(
    course_id: uuid.UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> ProgressRecord | None:
    await _require_course(course_id, db)
    record = await enroll(db, user.id, course_id)
    await invalidate_read_models(redis, user.id)
    return record


@router.post("/{course_id}/lessons/{lesson_index}/complete", response_model=ProgressRecord)
async def complete_course_lesson(
    course_id: uuid.UUID,
    lesson_index: int,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> ProgressRecord | None:
    """Mark a lesson done; completing the last lesson brings progress to 100%."""
    course = await _require_course(course_id, db)
    record = await complete_lesson(db, user.id, course, lesson_index)
    await invalidate_read_models(redis, user.id)
    return record
