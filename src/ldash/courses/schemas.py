"""Course catalog Pydantic schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from ldash.achievements.schemas import Certificate
from ldash.progress.schemas import ProgressRecord


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None = None
    field: str | None = None
    level: str | None = None
    lessons_count: int = 0
    image_url: str | None = None


class CourseDetailResponse(BaseModel):
    """A course together with the caller's standing in it."""

    course: CourseResponse
    progress: ProgressRecord | None = None
    is_enrolled: bool
    has_completed: bool
    certificate: Certificate | None = None
