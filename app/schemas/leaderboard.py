"""
Pydantic schemas for leaderboards.
"""
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class RankingEntry(BaseModel):
    """One ranked user."""

    position: int
    user_id: int
    username: str
    rank: str
    score: int
    metrics: Dict[str, int] = {}


class LeaderboardResponse(BaseModel):
    """Schema for a leaderboard page."""

    type: str
    rankings: List[RankingEntry]
    last_updated: Optional[datetime] = None


class MyRankResponse(BaseModel):
    """Schema for the current user's rank."""

    level: str
    points: int
    daily_problem_points: int
    position: Union[int, str]  # "Unranked" when outside the snapshot
