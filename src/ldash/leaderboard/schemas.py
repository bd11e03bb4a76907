"""Leaderboard Pydantic schemas."""

import uuid

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    user_id: uuid.UUID
    username: str
    badge_count: int = 0
    points: int = 0
