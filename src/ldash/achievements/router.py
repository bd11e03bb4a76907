"""Achievement endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ldash.achievements.award_engine import AwardEngine, run_award_scan
from ldash.achievements.schemas import AwardReport, UserAchievements
from ldash.achievements.service import get_user_achievements
from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.dependencies import get_db, get_db_factory, get_redis_dep

router = APIRouter(prefix="/api/v1/users/me/achievements", tags=["Achievements"])


@router.get("", response_model=UserAchievements)
async def my_achievements(
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_factory),
    redis: object | None = Depends(get_redis_dep),
) -> UserAchievements:
    """Current achievements; an award scan is scheduled after the response."""
    achievements = await get_user_achievements(session_factory, user.id)
    background_tasks.add_task(run_award_scan, session_factory, redis, user.id)
    return achievements


@router.post("/scan", response_model=AwardReport)
async def scan_my_achievements(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> AwardReport:
    """Run the award scan now and report what was minted."""
    return await AwardEngine(db, redis).scan(user.id)
