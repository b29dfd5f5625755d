"""
Leaderboard endpoints.
"""
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_active_user
from app.db.base import get_db
from app.models.user import User
from app.schemas.leaderboard import LeaderboardResponse, MyRankResponse
from app.services.leaderboard import ALL_TIME, DAILY_PRACTICE, LeaderboardService

router = APIRouter()


@router.get("", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """All-time leaderboard by rank points."""
    return LeaderboardService(db).get_leaderboard(ALL_TIME, limit)


@router.get("/daily-practice", response_model=LeaderboardResponse)
def get_daily_practice_leaderboard(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Leaderboard by daily problem points."""
    return LeaderboardService(db).get_leaderboard(DAILY_PRACTICE, limit)


@router.get("/my-rank", response_model=MyRankResponse)
def get_my_rank(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Current user's rank level, points and all-time position."""
    return LeaderboardService(db).my_rank(current_user)
