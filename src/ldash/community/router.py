"""Community endpoints: forum discussions and events."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.community.schemas import (
    DiscussionCreate,
    DiscussionResponse,
    EventResponse,
    JoinEventResponse,
)
from ldash.community.service import (
    create_discussion,
    get_event,
    join_event,
    list_discussions,
    list_upcoming_events,
)
from ldash.dependencies import get_db, get_redis_dep

router = APIRouter(prefix="/api/v1/community", tags=["Community"])


@router.get("/discussions", response_model=list[DiscussionResponse])
async def discussions(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[DiscussionResponse]:
    return await list_discussions(db, limit)


@router.post("/discussions", response_model=DiscussionResponse, status_code=201)
async def start_discussion(
    body: DiscussionCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> DiscussionResponse:
    return await create_discussion(db, redis, user.id, body.title, body.content)


@router.get("/events", response_model=list[EventResponse])
async def upcoming_events(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[EventResponse]:
    return await list_upcoming_events(db, limit=limit)


@router.post("/events/{event_id}/join", response_model=JoinEventResponse)
async def join(
    event_id: uuid.UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> JoinEventResponse:
    """Idempotent: joining twice reports ``joined: false`` the second time."""
    if await get_event(db, event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")
    joined = await join_event(db, redis, user.id, event_id)
    return JoinEventResponse(event_id=event_id, joined=joined)
