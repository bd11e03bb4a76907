"""Push award notifications and read-model invalidations over Redis pub/sub.

The presentation layer subscribes to ``ws:user:{user_id}`` and renders
``notification`` events as toasts; ``invalidate`` events tell it which
cached queries to refetch. Publishing is best-effort: a Redis failure is
logged and never undoes an award.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from ldash.dashboard.service import SUMMARY_CACHE_KEY, WEEKLY_CACHE_KEY

logger = logging.getLogger(__name__)

READ_MODEL_QUERIES = ("user_achievements", "dashboard_summary", "weekly_progress", "leaderboard")


def user_channel(user_id: uuid.UUID) -> str:
    return f"ws:user:{user_id}"


async def push_user_notification(
    redis: object | None,
    user_id: uuid.UUID,
    subtype: str,
    title: str,
    description: str,
    action_url: str | None = None,
) -> None:
    """Publish a user-visible notification to the user's channel."""
    if redis is None:
        return

    payload = {
        "event": "notification",
        "data": {
            "type": "achievements",
            "subtype": subtype,
            "title": title,
            "description": description,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "actionUrl": action_url,
        },
    }
    try:
        await redis.publish(user_channel(user_id), json.dumps(payload))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to push %s notification to %s", subtype, user_id, exc_info=True)


async def publish_badge_earned(
    redis: object | None,
    user_id: uuid.UUID,
    badge_name: str,
    tier: str,
    category: str,
) -> None:
    """Broadcast a badge_earned event for activity feeds."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            "pubsub:badge_earned",
            json.dumps({
                "user_id": str(user_id),
                "badge_name": badge_name,
                "tier": tier,
                "category": category,
            }),
        )
    except Exception:
        logger.warning("Failed to publish badge_earned broadcast", exc_info=True)


async def invalidate_read_models(redis: object | None, user_id: uuid.UUID) -> None:
    """Drop the user's cached dashboard entries and ask clients to refetch."""
    if redis is None:
        return
    try:
        await redis.delete(  # type: ignore[union-attr]
            SUMMARY_CACHE_KEY.format(user_id=user_id),
            WEEKLY_CACHE_KEY.format(user_id=user_id),
        )
        await redis.publish(  # type: ignore[union-attr]
            user_channel(user_id),
            json.dumps({"event": "invalidate", "data": {"queries": list(READ_MODEL_QUERIES)}}),
        )
    except Exception:
        logger.warning("Failed to invalidate read models for %s", user_id, exc_info=True)
