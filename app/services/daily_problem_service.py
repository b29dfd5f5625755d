"""
Daily problem operations for users and mentors.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AlreadyTerminalError, ExternalServiceError, NotFoundError
from app.core.progress.daily_attempt import (
    AttemptState,
    CodeExecutor,
    DailyAttemptTracker,
    HiddenTestCase,
    ProblemDefinition,
)
from app.models.daily_problem import DailyProblem, DailyProblemAttempt
from app.models.user import User
from app.schemas.daily_problem import (
    AttemptView,
    DailyProblemCreate,
    DailyProblemDetail,
    MentorAttemptView,
    SubmissionResult,
)
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

ATTEMPT_FIELDS = ("run_count", "is_locked", "passed", "points_awarded", "last_submitted_code", "last_results")


def to_problem_definition(problem: DailyProblem) -> ProblemDefinition:
    return ProblemDefinition(
        language=problem.language or "javascript",
        solution_code=problem.solution_code or "",
        test_cases=[HiddenTestCase.model_validate(case) for case in (problem.test_cases or [])],
        points_first_attempt=problem.points_first_attempt or 0,
        points_second_attempt=problem.points_second_attempt or 0,
        points_on_failure=problem.points_on_failure or 0,
    )


def to_attempt_state(attempt: Optional[DailyProblemAttempt]) -> AttemptState:
    if attempt is None:
        return AttemptState()
    return AttemptState(
        run_count=attempt.run_count or 0,
        is_locked=bool(attempt.is_locked),
        passed=bool(attempt.passed),
        points_awarded=attempt.points_awarded or 0,
        last_submitted_code=attempt.last_submitted_code,
        last_results=attempt.last_results,
    )


class DailyProblemService:
    """Looks up problems, tracks attempts and handles mentor review."""

    def __init__(self, db: Session, executor: Optional[CodeExecutor] = None):
        self.db = db
        self.executor = executor
        self.progress = ProgressService(db)

    # ============= Lookups =============

    def get_active(self, subject: str) -> DailyProblem:
        problem = (
            self.db.query(DailyProblem)
            .filter(DailyProblem.subject == subject, DailyProblem.is_active.is_(True))
            .order_by(DailyProblem.created_at.desc(), DailyProblem.id.desc())
            .first()
        )
        if not problem:
            raise NotFoundError("No active daily problem found for this subject.")
        return problem

    def get_problem(self, problem_id: int) -> DailyProblem:
        problem = self.db.query(DailyProblem).filter(DailyProblem.id == problem_id).first()
        if not problem:
            raise NotFoundError("Daily problem not found")
        return problem

    def find_attempt(self, user_id: int, problem_id: int) -> Optional[DailyProblemAttempt]:
        return (
            self.db.query(DailyProblemAttempt)
            .filter(DailyProblemAttempt.user_id == user_id, DailyProblemAttempt.problem_id == problem_id)
            .first()
        )

    def get_details(self, user: User, problem_id: int) -> DailyProblemDetail:
        """Problem details; the reference solution is only revealed once the attempt is locked."""
        problem = self.get_problem(problem_id)
        attempt = self.find_attempt(user.id, problem_id)
        detail = DailyProblemDetail.model_validate(problem)
        if not (attempt and attempt.is_locked):
            detail.solution_code = None
        return detail

    def get_attempt(self, user: User, problem_id: int) -> AttemptView:
        self.get_problem(problem_id)
        attempt = self.find_attempt(user.id, problem_id)
        if attempt is None:
            return AttemptView()
        return AttemptView.model_validate(attempt)

    def mark_feedback_read(self, user: User, problem_id: int) -> AttemptView:
        attempt = self.find_attempt(user.id, problem_id)
        if attempt is None:
            raise NotFoundError("No attempt found for this problem")
        attempt.feedback_read = True
        self.db.commit()
        self.db.refresh(attempt)
        return AttemptView.model_validate(attempt)

    # ============= Submission =============

    async def submit(self, user: User, problem_id: int, code: str) -> SubmissionResult:
        """
        Grade a submission against the hidden test cases.

        Args:
            user: The submitting user
            problem_id: Daily problem id
            code: Submitted source code

        Returns:
            SubmissionResult with the attempt's state after this run

        Raises:
            NotFoundError: Unknown or inactive problem
            AlreadyTerminalError: The attempt is locked, passed or out of runs
            ExternalServiceError: The execution service failed; no run is consumed
            ConflictError: Concurrent update of the same user
        """
        problem = self.get_problem(problem_id)
        if not problem.is_active:
            raise NotFoundError("This daily problem is not active.")

        attempt = self.find_attempt(user.id, problem_id)
        state = to_attempt_state(attempt)
        aggregate = self.progress.load_aggregate(user)
        tracker = DailyAttemptTracker(self.executor, run_limit=settings.DAILY_PROBLEM_RUN_LIMIT)

        try:
            outcome = await tracker.submit(to_problem_definition(problem), state, aggregate[1], code)
        except ExternalServiceError as exc:
            logger.error(f"Execution failed for user {user.id} on problem {problem_id}: {exc.detail}")
            self.db.rollback()
            raise

        if attempt is None:
            attempt = DailyProblemAttempt(user_id=user.id, problem_id=problem_id)
            self.db.add(attempt)
        for field in ATTEMPT_FIELDS:
            setattr(attempt, field, getattr(state, field))

        if not outcome.accepted:
            self.db.commit()
            logger.info(f"Submission rejected for user {user.id} on problem {problem_id}: {outcome.rejection}")
            raise AlreadyTerminalError(outcome.message or "No further submissions allowed.")

        attempt.last_attempted_at = datetime.now(timezone.utc)
        self.progress.recompute(aggregate)
        self.progress.save_aggregate(user, aggregate)
        logger.info(
            f"User {user.id} run {outcome.run_count} on problem {problem_id}: "
            f"passed={outcome.passed} locked={outcome.is_locked} points={outcome.points_earned}"
        )

        return SubmissionResult(
            passed=outcome.passed,
            is_locked=outcome.is_locked,
            run_count=outcome.run_count,
            last_results=outcome.last_results,
            solution_code=outcome.solution_code,
            points_awarded=outcome.points_awarded,
        )

    # ============= Mentor =============

    def create_problem(self, mentor: User, data: DailyProblemCreate) -> DailyProblem:
        problem = DailyProblem(
            **data.model_dump(exclude={"test_cases", "is_active"}),
            test_cases=[case.model_dump() for case in data.test_cases],
            created_by=mentor.id,
            is_active=False,
        )
        self.db.add(problem)
        self.db.flush()
        if data.is_active:
            self._activate(problem)
        self.db.commit()
        self.db.refresh(problem)
        logger.info(f"Daily problem {problem.id} created by {mentor.username}")
        return problem

    def _activate(self, problem: DailyProblem) -> None:
        # one active problem per subject
        self.db.query(DailyProblem).filter(
            DailyProblem.subject == problem.subject,
            DailyProblem.id != problem.id,
            DailyProblem.is_active.is_(True),
        ).update({DailyProblem.is_active: False}, synchronize_session=False)
        problem.is_active = True

    def toggle_active(self, problem_id: int) -> DailyProblem:
        problem = self.get_problem(problem_id)
        if problem.is_active:
            problem.is_active = False
        else:
            self._activate(problem)
        self.db.commit()
        self.db.refresh(problem)
        logger.info(f"Daily problem {problem_id} active={problem.is_active}")
        return problem

    def list_attempts(self, problem_id: int) -> List[MentorAttemptView]:
        self.get_problem(problem_id)
        rows = (
            self.db.query(DailyProblemAttempt, User.username)
            .join(User, User.id == DailyProblemAttempt.user_id)
            .filter(DailyProblemAttempt.problem_id == problem_id)
            .order_by(DailyProblemAttempt.last_attempted_at.desc())
            .all()
        )
        views = []
        for attempt, username in rows:
            view = MentorAttemptView.model_validate(attempt)
            view.username = username
            views.append(view)
        return views

    def give_feedback(self, problem_id: int, user_id: int, feedback: str) -> MentorAttemptView:
        attempt = self.find_attempt(user_id, problem_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        attempt.mentor_feedback = feedback
        attempt.feedback_read = False
        self.db.commit()
        self.db.refresh(attempt)
        return MentorAttemptView.model_validate(attempt)
