"""Forum discussions and community events."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.community.schemas import DiscussionAuthor, DiscussionResponse, EventResponse
from ldash.db.models import Event, EventParticipant, ForumDiscussion, ForumReply, Profile
from ldash.exceptions import IntegrityViolation, is_unique_violation, store_guard
from ldash.realtime.feed import publish_change

logger = structlog.get_logger()

ANONYMOUS = "Anonymous"


def _discussion_response(row: ForumDiscussion, reply_count: int) -> DiscussionResponse:
    author: Profile | None = row.author
    return DiscussionResponse(
        id=row.id,
        title=row.title,
        content=row.content,
        created_at=row.created_at,
        author=DiscussionAuthor(
            id=row.user_id,
            username=(author.username if author else None) or ANONYMOUS,
            avatar_url=author.avatar_url if author else None,
        ),
        reply_count=reply_count,
    )


async def list_discussions(db: AsyncSession, limit: int = 20) -> list[DiscussionResponse]:
    """Newest discussions first, with author and reply count."""
    replies = (
        select(ForumReply.discussion_id, func.count(ForumReply.id).label("reply_count"))
        .group_by(ForumReply.discussion_id)
        .subquery()
    )
    with store_guard("list_discussions"):
        result = await db.execute(
            select(ForumDiscussion, func.coalesce(replies.c.reply_count, 0))
            .outerjoin(replies, replies.c.discussion_id == ForumDiscussion.id)
            .order_by(ForumDiscussion.created_at.desc())
            .limit(limit)
        )
        rows = result.unique().all()
    return [_discussion_response(discussion, int(count)) for discussion, count in rows]


async def create_discussion(
    db: AsyncSession,
    redis: object | None,
    user_id: uuid.UUID,
    title: str,
    content: str,
) -> DiscussionResponse:
    discussion = ForumDiscussion(id=uuid.uuid4(), user_id=user_id, title=title, content=content)
    db.add(discussion)
    with store_guard("create_discussion"):
        await db.commit()
        await db.refresh(discussion, attribute_names=["author"])

    response = _discussion_response(discussion, 0)
    await publish_change(redis, "forum_discussions", "INSERT", response.model_dump(mode="json"))
    return response


async def list_upcoming_events(
    db: AsyncSession,
    now: datetime | None = None,
    limit: int = 20,
) -> list[EventResponse]:
    """Events starting at or after ``now``, soonest first."""
    now = now or datetime.now(timezone.utc)
    with store_guard("list_upcoming_events"):
        result = await db.execute(
            select(Event).where(Event.start_date >= now).order_by(Event.start_date).limit(limit)
        )
        rows = result.scalars().all()
    return [EventResponse.model_validate(row) for row in rows]


async def get_event(db: AsyncSession, event_id: uuid.UUID) -> EventResponse | None:
    with store_guard("get_event"):
        result = await db.execute(select(Event).where(Event.id == event_id))
        row = result.scalar_one_or_none()
    return EventResponse.model_validate(row) if row is not None else None


async def join_event(
    db: AsyncSession,
    redis: object | None,
    user_id: uuid.UUID,
    event_id: uuid.UUID,
) -> bool:
    """Register the user for an event. False when already registered.

    Raises IntegrityViolation when the event or profile does not exist.
    """
    db.add(EventParticipant(event_id=event_id, user_id=user_id))
    try:
        with store_guard("join_event"):
            await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_unique_violation(exc):
            return False
        raise IntegrityViolation("join_event") from exc

    logger.info("event_joined", user_id=str(user_id), event_id=str(event_id))
    await publish_change(
        redis, "events", "UPDATE", {"event_id": str(event_id), "user_id": str(user_id)}
    )
    return True
