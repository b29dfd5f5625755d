"""
Pydantic schemas for progress endpoints.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.progress.schemas import (
    AlgorithmProgress,
    LearningPath,
    ProgressDelta,
    UserStats,
)


class AccessCheckResponse(BaseModel):
    """Schema for the access check."""

    has_access: bool
    status: str  # "available", "locked (topic)", "locked (algorithm)"


class ProgressUpdateRequest(BaseModel):
    """Schema for a progress report on one algorithm."""

    topic_id: str = Field(..., min_length=1)
    algorithm_id: str = Field(..., min_length=1)
    data: ProgressDelta


class ProgressUpdateResponse(BaseModel):
    """Schema for the result of a progress report."""

    success: bool = True
    message: str = "Progress updated successfully"
    updated_algorithm_progress: AlgorithmProgress
    updated_stats: UserStats
    updated_topic_status: str
    updated_topic_completion: int
    updated_learning_path: LearningPath


class AlgorithmView(BaseModel):
    """Algorithm definition merged with the user's progress and effective status."""

    id: str
    name: str
    points: int
    difficulty: Optional[str] = None
    is_globally_locked: bool
    effective_status: str
    progress: Optional[AlgorithmProgress] = None


class TopicView(BaseModel):
    """Topic definition merged with the user's progress and effective status."""

    id: str
    name: str
    order: int
    prerequisites: List[str]
    status: str
    completion: int
    algorithms: List[AlgorithmView]


class DashboardStats(BaseModel):
    """Stats block of the dashboard."""

    overall_progress: int
    algorithms_completed: int
    total_algorithms: int
    time_today: int
    time_total: int
    current_streak: int
    longest_streak: int
    rank: Dict[str, Any]
    daily_problem_points: int
    average_accuracy: int


class DashboardResponse(BaseModel):
    """Schema for the user dashboard."""

    username: str
    stats: DashboardStats
    topics: List[TopicView]
    learning_path: LearningPath
