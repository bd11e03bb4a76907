"""Dashboard endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.dashboard.schemas import DashboardSummary
from ldash.dashboard.service import get_dashboard_summary, get_weekly_progress
from ldash.dependencies import get_db, get_db_factory, get_redis_dep
from ldash.progress.schemas import WeeklyBucket

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary)
async def dashboard_summary(
    user: AuthUser = Depends(get_current_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_factory),
    redis: object | None = Depends(get_redis_dep),
) -> DashboardSummary:
    """Streak, XP, completed goals and badge count (briefly cached in Redis)."""
    return await get_dashboard_summary(session_factory, redis, user)


@router.get("/weekly-progress", response_model=list[WeeklyBucket])
async def dashboard_weekly_progress(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> list[WeeklyBucket]:
    """Seven cumulative weekly progress buckets."""
    return await get_weekly_progress(db, redis, user.id)
