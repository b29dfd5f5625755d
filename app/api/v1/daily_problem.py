"""
API endpoints for the daily coding problem.
"""
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_active_user, get_execution_client
from app.db.base import get_db
from app.models.user import User
from app.schemas.common import ErrorResponse
from app.schemas.daily_problem import (
    AttemptView,
    DailyProblemDetail,
    DailyProblemSummary,
    SubmissionRequest,
    SubmissionResult,
)
from app.services.daily_problem_service import DailyProblemService
from app.services.execution import ExecutionClient

router = APIRouter()


@router.get("/active/{subject}", response_model=DailyProblemSummary)
def get_active_problem(
    subject: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Get the active problem for a subject."""
    return DailyProblemService(db).get_active(subject)


@router.get("/{problem_id}", response_model=DailyProblemDetail)
def get_problem(
    problem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Get problem details. The solution is included only once the attempt is locked."""
    return DailyProblemService(db).get_details(current_user, problem_id)


@router.get("/{problem_id}/my-attempt", response_model=AttemptView)
def get_my_attempt(
    problem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Get the current user's attempt, or an empty attempt if none exists."""
    return DailyProblemService(db).get_attempt(current_user, problem_id)


@router.post("/{problem_id}/feedback-read", response_model=AttemptView)
def mark_feedback_read(
    problem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Mark mentor feedback on the current user's attempt as read."""
    return DailyProblemService(db).mark_feedback_read(current_user, problem_id)


@router.post(
    "/submit",
    response_model=SubmissionResult,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def submit_solution(
    payload: SubmissionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    executor: ExecutionClient = Depends(get_execution_client),
) -> Any:
    """
    Submit code for the daily problem.

    Each user gets a limited number of runs. Passing, or using up the runs,
    locks the attempt and reveals the solution. Points are awarded once.
    """
    service = DailyProblemService(db, executor)
    return await service.submit(current_user, payload.problem_id, payload.submitted_code)
