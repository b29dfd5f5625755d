"""
API endpoints for topic access, progress reporting and the dashboard.
"""
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_active_user
from app.db.base import get_db
from app.models.user import User
from app.schemas.common import ErrorResponse
from app.schemas.progress import (
    AccessCheckResponse,
    DashboardResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)
from app.services.progress_service import ProgressService

router = APIRouter()

ERROR_RESPONSES = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ============= Progress Endpoints =============

@router.get(
    "/check-access/{topic_id}/{algorithm_id}",
    response_model=AccessCheckResponse,
    responses={404: {"model": ErrorResponse}},
)
def check_access(
    topic_id: str,
    algorithm_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Check whether the current user may open an algorithm.

    Returns:
        ``has_access`` and a status of "available", "locked (topic)" or
        "locked (algorithm)"
    """
    verdict = ProgressService(db).check_access(current_user, topic_id, algorithm_id)
    return AccessCheckResponse(has_access=verdict.has_access, status=verdict.status)


@router.post("", response_model=ProgressUpdateResponse, responses=ERROR_RESPONSES)
def update_progress(
    payload: ProgressUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Report visualization or practice progress on an algorithm.

    Recomputes stats, advances the learning path when a topic is finished
    and returns the updated state.
    """
    return ProgressService(db).record_progress(
        current_user, payload.topic_id, payload.algorithm_id, payload.data
    )


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Get the catalog merged with the user's progress, stats and learning path.
    """
    return ProgressService(db).dashboard(current_user)
