"""
Mentor endpoints: daily problems, tests and doubt answers.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.dependencies import require_role
from app.db.base import get_db
from app.models.user import User
from app.schemas.assessment import (
    AssessmentLeaderboardResponse,
    MentorAttemptRow,
    MentorTestCreate,
    MentorTestOut,
    QuestionDetail,
    QuestionIn,
    UnlockAttemptRequest,
)
from app.schemas.common import Message
from app.schemas.daily_problem import (
    DailyProblemCreate,
    DailyProblemDetail,
    FeedbackRequest,
    MentorAttemptView,
)
from app.schemas.doubt import DoubtMessageOut, DoubtReply, DoubtSummary, DoubtThread
from app.services.assessment_service import AssessmentService
from app.services.daily_problem_service import DailyProblemService
from app.services.doubt_service import DoubtService

router = APIRouter()

require_mentor = require_role("mentor", "admin")


@router.post("/daily-problems", response_model=DailyProblemDetail, status_code=status.HTTP_201_CREATED)
def create_daily_problem(
    problem_in: DailyProblemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Create a daily problem. Activating it deactivates others in the same subject."""
    return DailyProblemService(db).create_problem(current_user, problem_in)


@router.post("/daily-problems/{problem_id}/toggle", response_model=DailyProblemDetail)
def toggle_daily_problem(
    problem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Activate or deactivate a daily problem."""
    return DailyProblemService(db).toggle_active(problem_id)


@router.get("/daily-problems/{problem_id}/attempts", response_model=List[MentorAttemptView])
def list_attempts(
    problem_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """List every user's attempt on a problem, most recent first."""
    return DailyProblemService(db).list_attempts(problem_id)


@router.post(
    "/daily-problems/{problem_id}/attempts/{user_id}/feedback",
    response_model=MentorAttemptView,
)
def give_feedback(
    problem_id: int,
    user_id: int,
    feedback_in: FeedbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Attach feedback to a user's attempt."""
    return DailyProblemService(db).give_feedback(problem_id, user_id, feedback_in.feedback)


# ============= Tests =============


@router.get("/tests", response_model=List[MentorTestOut])
def list_tests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """List the current mentor's tests, newest first."""
    return AssessmentService(db).list_tests(current_user)


@router.post("/tests", response_model=MentorTestOut, status_code=status.HTTP_201_CREATED)
def create_test(
    test_in: MentorTestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Create a password-protected test. New tests start as drafts."""
    return AssessmentService(db).create_test(current_user, test_in)


@router.delete("/tests/{test_id}", response_model=Message)
def delete_test(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Delete a test along with its questions and all attempts."""
    title = AssessmentService(db).delete_test(current_user, test_id)
    return Message(message=f'Test "{title}" and all related data deleted.')


@router.post("/tests/{test_id}/toggle", response_model=Message)
def toggle_test(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Publish a draft test or take a published one offline."""
    _, message = AssessmentService(db).toggle_active(current_user, test_id)
    return Message(message=message)


@router.post("/tests/{test_id}/questions", response_model=QuestionDetail, status_code=status.HTTP_201_CREATED)
def add_question(
    test_id: int,
    question_in: QuestionIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    return AssessmentService(db).add_question(current_user, test_id, question_in)


@router.get("/questions/{question_id}", response_model=QuestionDetail)
def get_question(
    question_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    return AssessmentService(db).get_owned_question(current_user, question_id)


@router.put("/questions/{question_id}", response_model=QuestionDetail)
def update_question(
    question_id: int,
    question_in: QuestionIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    return AssessmentService(db).update_question(current_user, question_id, question_in)


@router.delete("/tests/{test_id}/questions/{question_id}", response_model=Message)
def delete_question(
    test_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    AssessmentService(db).delete_question(current_user, test_id, question_id)
    return Message(message="Question deleted")


@router.get("/tests/{test_id}/attempts", response_model=List[MentorAttemptRow])
def list_test_attempts(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Monitor every user's attempt on a test."""
    return AssessmentService(db).list_attempts(current_user, test_id)


@router.get("/tests/{test_id}/leaderboard", response_model=AssessmentLeaderboardResponse)
def get_test_leaderboard(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Completed attempts ranked by score."""
    return AssessmentService(db).leaderboard(current_user, test_id)


@router.post("/attempts/unlock", response_model=Message)
def unlock_attempt(
    payload: UnlockAttemptRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Reopen an attempt locked by strikes and reset its strike count."""
    message = AssessmentService(db).unlock_attempt(current_user, payload.user_id, payload.attempt_id)
    return Message(message=message)


# ============= Doubts =============


@router.get("/doubts", response_model=List[DoubtSummary])
def list_open_doubts(
    subject: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    """Open doubts waiting for an answer, optionally filtered by subject."""
    return DoubtService(db).list_open(subject)


@router.get("/doubts/{doubt_id}", response_model=DoubtThread)
def get_doubt_thread(
    doubt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    return DoubtService(db).get_thread(current_user, doubt_id)


@router.post("/doubts/{doubt_id}/reply", response_model=DoubtMessageOut, status_code=status.HTTP_201_CREATED)
def answer_doubt(
    doubt_id: int,
    reply_in: DoubtReply,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_mentor),
) -> Any:
    return DoubtService(db).mentor_reply(current_user, doubt_id, reply_in.message)
