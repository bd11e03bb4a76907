"""Community Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DiscussionAuthor(BaseModel):
    id: uuid.UUID
    username: str
    avatar_url: str | None = None


class DiscussionResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    created_at: datetime
    author: DiscussionAuthor
    reply_count: int = 0


class DiscussionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    location: str | None = None


class JoinEventResponse(BaseModel):
    event_id: uuid.UUID
    joined: bool
