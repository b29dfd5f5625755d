"""
API endpoints for learners' doubt threads.
"""
from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dependencies import get_current_active_user
from app.db.base import get_db
from app.models.user import User
from app.schemas.common import ErrorResponse, Message
from app.schemas.doubt import DoubtCreate, DoubtMessageOut, DoubtReply, DoubtSummary, DoubtThread, SubjectList
from app.services.doubt_service import DoubtService

router = APIRouter()


@router.get("/subjects", response_model=SubjectList)
def get_subjects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Subjects the user may ask doubts in."""
    return SubjectList(subjects=DoubtService(db).accessible_subjects(current_user))


@router.post(
    "/ask",
    response_model=DoubtThread,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}},
)
def ask_doubt(
    doubt_in: DoubtCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return DoubtService(db).ask(current_user, doubt_in)


@router.get("/my-doubts", response_model=List[DoubtSummary])
def my_doubts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """The user's doubts without messages, open ones first."""
    return DoubtService(db).list_my_doubts(current_user)


@router.get("/thread/{doubt_id}", response_model=DoubtThread)
def get_thread(
    doubt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return DoubtService(db).get_thread(current_user, doubt_id)


@router.post("/reply/{doubt_id}", response_model=DoubtMessageOut, status_code=status.HTTP_201_CREATED)
def reply(
    doubt_id: int,
    reply_in: DoubtReply,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Add a follow-up to an open doubt."""
    return DoubtService(db).reply(current_user, doubt_id, reply_in.message)


@router.post("/close/{doubt_id}", response_model=Message)
def close_doubt(
    doubt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Close a doubt. Closed doubts are deleted after the retention window."""
    DoubtService(db).close(current_user, doubt_id)
    return Message(message=f"Doubt closed. It will be removed in {settings.DOUBT_RETENTION_HOURS} hours.")
