"""Leaderboard endpoint."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.auth.dependencies import get_current_user
from ldash.auth.session import AuthUser
from ldash.dependencies import get_db
from ldash.leaderboard.schemas import LeaderboardEntry
from ldash.leaderboard.service import get_leaderboard

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int | None = Query(None, ge=1),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[LeaderboardEntry]:
    return await get_leaderboard(db, limit)
