"""Progress endpoints to read and write the caller's course progress."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.achievements.notifications import invalidate_read_models
from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.courses.service import get_course
from ldash.dependencies import get_db, get_redis_dep
from ldash.progress.schemas import ProgressRecord, ProgressUpdate
from ldash.progress.store import ProgressStore

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


@router.get("", response_model=list[ProgressRecord])
async def list_progress(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProgressRecord]:
    return await ProgressStore(db).get_progress(user.id)


@router.get("/{course_id}", response_model=ProgressRecord | None)
async def course_progress(
    course_id: uuid.UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProgressRecord | None:
    """The caller's record for one course, or null when not enrolled."""
    return await ProgressStore(db).get_progress(user.id, course_id)


@router.put("/{course_id}", response_model=ProgressRecord | None)
async def update_progress(
    course_id: uuid.UUID,
    body: ProgressUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> ProgressRecord | None:
    """Upsert progress and return the stored record."""
    if await get_course(db, course_id) is None:
        raise HTTPException(status_code=404, detail="Course not found")
    store = ProgressStore(db)
    await store.upsert_progress(user.id, course_id, body.progress_percentage, body.lesson_index)
    await invalidate_read_models(redis, user.id)
    return await store.get_progress(user.id, course_id)
