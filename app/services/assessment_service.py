"""
Mentor test operations: authoring, taking tests, strikes and mentor unlocks.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AccessDeniedError,
    AlreadyTerminalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.core.progress.assessment import (
    Answer,
    AnswerKey,
    AssessmentAttemptState,
    AssessmentOutcome,
    AssessmentTracker,
    AttemptStatus,
)
from app.models.assessment import MentorTest, MentorTestAttempt, MentorTestQuestion
from app.models.user import User
from app.schemas.assessment import (
    AssessmentLeaderboardEntry,
    AssessmentLeaderboardResponse,
    AssessmentAttemptOut,
    MentorAttemptRow,
    MentorTestCreate,
    MentorTestListing,
    QuestionForUser,
    QuestionIn,
    StartTestResponse,
    StrikeResult,
)

logger = logging.getLogger(__name__)

ATTEMPT_FIELDS = ("status", "strikes", "score", "correct_answers", "completed_at")


def to_answer_key(question: MentorTestQuestion) -> AnswerKey:
    return AnswerKey(
        question_id=question.id,
        question_type=question.question_type or "mcq",
        correct_answer_index=question.correct_answer_index,
        short_answers=list(question.short_answers or []),
    )


def to_attempt_state(attempt: MentorTestAttempt) -> AssessmentAttemptState:
    return AssessmentAttemptState(
        status=attempt.status or AttemptStatus.IN_PROGRESS,
        strikes=attempt.strikes or 0,
        score=attempt.score or 0,
        correct_answers=attempt.correct_answers or 0,
        completed_at=attempt.completed_at,
    )


class AssessmentService:
    """Mentor-side test management and learner-side attempts."""

    def __init__(self, db: Session):
        self.db = db
        self.tracker = AssessmentTracker(max_strikes=settings.MAX_TEST_STRIKES)

    def _write_back(self, attempt: MentorTestAttempt, state: AssessmentAttemptState) -> None:
        for field in ATTEMPT_FIELDS:
            setattr(attempt, field, getattr(state, field))

    @staticmethod
    def _raise_rejection(outcome: AssessmentOutcome) -> None:
        if outcome.rejection == "locked":
            raise AccessDeniedError(outcome.message or "This test is locked.", blocker="test")
        if outcome.rejection == "completed":
            raise AlreadyTerminalError(outcome.message or "This test is already completed.")
        raise InvalidStateError(outcome.message or "Invalid attempt state.")

    # ============= Mentor: tests =============

    def get_owned_test(self, mentor: User, test_id: int) -> MentorTest:
        test = (
            self.db.query(MentorTest)
            .filter(MentorTest.id == test_id, MentorTest.created_by == mentor.id)
            .first()
        )
        if not test:
            raise NotFoundError("Test not found or you do not own this test")
        return test

    def list_tests(self, mentor: User) -> List[MentorTest]:
        return (
            self.db.query(MentorTest)
            .filter(MentorTest.created_by == mentor.id)
            .order_by(MentorTest.created_at.desc(), MentorTest.id.desc())
            .all()
        )

    def create_test(self, mentor: User, data: MentorTestCreate) -> MentorTest:
        test = MentorTest(title=data.title, created_by=mentor.id, is_active=False)
        test.set_password(data.password)
        self.db.add(test)
        self.db.commit()
        self.db.refresh(test)
        logger.info(f"Test {test.id} created by {mentor.username}")
        return test

    def delete_test(self, mentor: User, test_id: int) -> str:
        """Delete a test with its questions and every user's attempt. Returns the title."""
        test = self.get_owned_test(mentor, test_id)
        title = test.title
        self.db.delete(test)
        self.db.commit()
        logger.info(f"Mentor {mentor.id} deleted test {test_id} with its questions and attempts")
        return title

    def toggle_active(self, mentor: User, test_id: int) -> Tuple[MentorTest, str]:
        test = self.get_owned_test(mentor, test_id)
        test.is_active = not test.is_active
        self.db.commit()
        self.db.refresh(test)
        state = "Active" if test.is_active else "a Draft"
        logger.info(f"Mentor {mentor.id} set test {test_id} active={test.is_active}")
        return test, f'Test "{test.title}" is now {state}.'

    # ============= Mentor: questions =============

    def add_question(self, mentor: User, test_id: int, data: QuestionIn) -> MentorTestQuestion:
        test = self.get_owned_test(mentor, test_id)
        question = MentorTestQuestion(
            **data.model_dump(),
            position=len(test.questions),
            created_by=mentor.id,
        )
        test.questions.append(question)
        self.db.commit()
        self.db.refresh(question)
        return question

    def get_owned_question(self, mentor: User, question_id: int) -> MentorTestQuestion:
        question = (
            self.db.query(MentorTestQuestion)
            .filter(MentorTestQuestion.id == question_id, MentorTestQuestion.created_by == mentor.id)
            .first()
        )
        if not question:
            raise NotFoundError("Question not found or access denied")
        return question

    def update_question(self, mentor: User, question_id: int, data: QuestionIn) -> MentorTestQuestion:
        question = self.get_owned_question(mentor, question_id)
        for field, value in data.model_dump().items():
            setattr(question, field, value)
        self.db.commit()
        self.db.refresh(question)
        return question

    def delete_question(self, mentor: User, test_id: int, question_id: int) -> None:
        question = self.get_owned_question(mentor, question_id)
        self.get_owned_test(mentor, test_id)
        if question.test_id != test_id:
            raise NotFoundError("Question not found in this test")
        self.db.delete(question)
        self.db.commit()

    # ============= Mentor: monitoring =============

    def list_attempts(self, mentor: User, test_id: int) -> List[MentorAttemptRow]:
        self.get_owned_test(mentor, test_id)
        rows = (
            self.db.query(MentorTestAttempt, User.username)
            .join(User, User.id == MentorTestAttempt.user_id)
            .filter(MentorTestAttempt.test_id == test_id)
            .order_by(MentorTestAttempt.started_at.desc(), MentorTestAttempt.id.desc())
            .all()
        )
        return [
            MentorAttemptRow(
                user_id=attempt.user_id,
                username=username,
                attempt_id=attempt.id,
                status=attempt.status,
                strikes=attempt.strikes,
                score=attempt.score,
                started_at=attempt.started_at,
            )
            for attempt, username in rows
        ]

    def leaderboard(self, mentor: User, test_id: int) -> AssessmentLeaderboardResponse:
        """Completed attempts ranked by score; earlier completion wins ties."""
        test = self.get_owned_test(mentor, test_id)
        rows = (
            self.db.query(MentorTestAttempt, User.username)
            .join(User, User.id == MentorTestAttempt.user_id)
            .filter(
                MentorTestAttempt.test_id == test_id,
                MentorTestAttempt.status == AttemptStatus.COMPLETED,
            )
            .order_by(MentorTestAttempt.score.desc(), MentorTestAttempt.completed_at, MentorTestAttempt.id)
            .all()
        )
        entries = [
            AssessmentLeaderboardEntry(
                position=position,
                user_id=attempt.user_id,
                username=username,
                score=attempt.score,
                completed_at=attempt.completed_at,
            )
            for position, (attempt, username) in enumerate(rows, start=1)
        ]
        return AssessmentLeaderboardResponse(test_title=test.title, leaderboard=entries)

    def unlock_attempt(self, mentor: User, user_id: int, attempt_id: int) -> str:
        """
        Reopen a strike-locked attempt and reset its strikes.

        Raises:
            NotFoundError: Unknown user or attempt
            AccessDeniedError: The mentor does not own the attempt's test
            InvalidStateError: The attempt is not locked
        """
        row = (
            self.db.query(MentorTestAttempt, User.username)
            .join(User, User.id == MentorTestAttempt.user_id)
            .filter(MentorTestAttempt.id == attempt_id, MentorTestAttempt.user_id == user_id)
            .first()
        )
        if row is None:
            raise NotFoundError("User or test attempt not found")
        attempt, username = row
        if attempt.test.created_by != mentor.id:
            raise AccessDeniedError("Access denied: You do not own the test associated with this attempt.")

        state = to_attempt_state(attempt)
        outcome = self.tracker.unlock(state)
        if not outcome.accepted:
            self._raise_rejection(outcome)
        self._write_back(attempt, state)
        self.db.commit()
        logger.info(f"Mentor {mentor.id} unlocked test {attempt.test_id} for user {user_id}")
        return f"Test unlocked for {username}"

    # ============= Learner =============

    def list_active(self) -> List[MentorTestListing]:
        tests = (
            self.db.query(MentorTest)
            .filter(MentorTest.is_active.is_(True))
            .order_by(MentorTest.created_at.desc(), MentorTest.id.desc())
            .all()
        )
        return [MentorTestListing(id=t.id, title=t.title, question_count=len(t.questions)) for t in tests]

    def get_active_test(self, test_id: int) -> MentorTest:
        test = self.db.query(MentorTest).filter(MentorTest.id == test_id).first()
        if not test or not test.is_active:
            raise NotFoundError("Test not found or not active")
        return test

    def find_attempt(self, user_id: int, test_id: int) -> Optional[MentorTestAttempt]:
        return (
            self.db.query(MentorTestAttempt)
            .filter(MentorTestAttempt.user_id == user_id, MentorTestAttempt.test_id == test_id)
            .first()
        )

    def _require_attempt(self, user: User, test_id: int) -> MentorTestAttempt:
        attempt = self.find_attempt(user.id, test_id)
        if attempt is None:
            raise NotFoundError("You have not started this test")
        return attempt

    def get_attempt(self, user: User, test_id: int) -> MentorTestAttempt:
        return self._require_attempt(user, test_id)

    def start(self, user: User, test_id: int, password: str) -> StartTestResponse:
        """
        Start or resume a test.

        Raises:
            NotFoundError: Unknown or inactive test
            AccessDeniedError: Wrong password, or the attempt is strike-locked
            AlreadyTerminalError: The attempt is already completed
            ValidationError: The test has no questions
        """
        test = self.get_active_test(test_id)
        if not test.check_password(password):
            raise AccessDeniedError("Incorrect test password.")
        if not test.questions:
            raise ValidationError("This test has no questions yet.")

        attempt = self.find_attempt(user.id, test_id)
        if attempt is None:
            attempt = MentorTestAttempt(
                user_id=user.id,
                test_id=test_id,
                status=AttemptStatus.IN_PROGRESS,
                strikes=0,
                score=0.0,
                correct_answers=0,
            )
            self.db.add(attempt)
            self.db.commit()
            self.db.refresh(attempt)
            logger.info(f"User {user.id} started test {test_id}")
        else:
            outcome = self.tracker.resume(to_attempt_state(attempt))
            if not outcome.accepted:
                self._raise_rejection(outcome)

        return StartTestResponse(
            test_id=test.id,
            title=test.title,
            attempt=AssessmentAttemptOut.model_validate(attempt),
            questions=[QuestionForUser.model_validate(question) for question in test.questions],
        )

    def record_strike(self, user: User, test_id: int) -> StrikeResult:
        attempt = self._require_attempt(user, test_id)
        state = to_attempt_state(attempt)
        outcome = self.tracker.record_strike(state)
        if not outcome.accepted:
            self._raise_rejection(outcome)
        self._write_back(attempt, state)
        self.db.commit()
        logger.info(f"User {user.id} strike {state.strikes} on test {test_id}")
        return StrikeResult(status=outcome.status, strikes=outcome.strikes, message=outcome.message)

    def submit(self, user: User, test_id: int, answers: Dict[int, Answer]) -> MentorTestAttempt:
        """Grade the answers and complete the attempt. Unknown question ids are ignored."""
        test = self.get_active_test(test_id)
        attempt = self._require_attempt(user, test_id)
        keys = [to_answer_key(question) for question in test.questions]
        known = {key.question_id for key in keys}

        state = to_attempt_state(attempt)
        outcome = self.tracker.complete(state, keys, answers, datetime.now(timezone.utc))
        if not outcome.accepted:
            self._raise_rejection(outcome)
        self._write_back(attempt, state)
        attempt.answers = {str(qid): answer for qid, answer in answers.items() if qid in known}
        self.db.commit()
        self.db.refresh(attempt)
        logger.info(f"User {user.id} completed test {test_id} with score {attempt.score}")
        return attempt
