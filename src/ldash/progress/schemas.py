"""Pydantic models for progress records and derived progress metrics."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProgressRecord(BaseModel):
    """A validated course_progress row."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    course_id: uuid.UUID
    progress_percentage: int = Field(ge=0, le=100)
    completed: bool
    last_accessed: datetime
    current_lesson_index: int = Field(default=0, ge=0)


class ProgressUpdate(BaseModel):
    progress_percentage: int = Field(ge=0, le=100)
    lesson_index: int | None = Field(default=None, ge=0)


class WeeklyBucket(BaseModel):
    week: str
    progress: float
