"""Dashboard Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel


class DashboardSummary(BaseModel):
    """Header metrics for the learner dashboard."""

    name: str
    role: str
    learning_streak: int
    xp_gained: int
    goals_completed: int
    achievements: int
