"""
API endpoints for taking mentor tests.
"""
from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_active_user
from app.db.base import get_db
from app.models.user import User
from app.schemas.assessment import (
    AssessmentAttemptOut,
    MentorTestListing,
    StartTestRequest,
    StartTestResponse,
    StrikeResult,
    SubmitTestRequest,
)
from app.schemas.common import ErrorResponse
from app.services.assessment_service import AssessmentService

router = APIRouter()


@router.get("", response_model=List[MentorTestListing])
def list_active_tests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """List tests that mentors have published."""
    return AssessmentService(db).list_active()


@router.post(
    "/{test_id}/start",
    response_model=StartTestResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def start_test(
    test_id: int,
    payload: StartTestRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Start or resume a test with its password.

    A locked attempt stays closed until a mentor unlocks it.
    """
    return AssessmentService(db).start(current_user, test_id, payload.password)


@router.post("/{test_id}/strike", response_model=StrikeResult, responses={403: {"model": ErrorResponse}})
def record_strike(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Report a proctoring violation. Reaching the strike limit locks the attempt."""
    return AssessmentService(db).record_strike(current_user, test_id)


@router.post("/{test_id}/submit", response_model=AssessmentAttemptOut, responses={403: {"model": ErrorResponse}})
def submit_test(
    test_id: int,
    payload: SubmitTestRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return AssessmentService(db).submit(current_user, test_id, payload.answers)


@router.get("/{test_id}/my-attempt", response_model=AssessmentAttemptOut)
def get_my_attempt(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return AssessmentService(db).get_attempt(current_user, test_id)
