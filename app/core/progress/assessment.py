"""
Mentor test attempt state machine.

inprogress -> locked when the strike limit is reached; a mentor unlock moves
it back to inprogress with strikes reset. inprogress -> completed on
submission. Completed is terminal.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AttemptStatus:
    """Status values of a mentor test attempt."""

    IN_PROGRESS = "inprogress"
    LOCKED = "locked"
    COMPLETED = "completed"


class QuestionType:
    MCQ = "mcq"
    SHORT_ANSWER = "short_answer"


class AnswerKey(BaseModel):
    """What counts as a correct answer to one question."""

    question_id: int
    question_type: str = QuestionType.MCQ
    correct_answer_index: Optional[int] = None
    short_answers: List[str] = Field(default_factory=list)


class AssessmentAttemptState(BaseModel):
    """Mutable state of one (user, test) attempt."""

    status: str = AttemptStatus.IN_PROGRESS
    strikes: int = 0
    score: float = 0
    correct_answers: int = 0
    completed_at: Optional[datetime] = None


class AssessmentOutcome(BaseModel):
    """Result of a transition request, accepted or rejected."""

    accepted: bool
    rejection: Optional[str] = None  # "locked", "completed", "not_locked"
    message: Optional[str] = None
    status: str
    strikes: int = 0
    score: float = 0


Answer = Union[int, str]


def is_correct(key: AnswerKey, answer: Optional[Answer]) -> bool:
    """MCQ answers match by option index; short answers match case-insensitively."""
    if answer is None:
        return False
    if key.question_type == QuestionType.SHORT_ANSWER:
        given = str(answer).strip().lower()
        return any(given == accepted.strip().lower() for accepted in key.short_answers)
    if isinstance(answer, bool):
        return False
    try:
        return int(answer) == key.correct_answer_index
    except (TypeError, ValueError):
        return False


class AssessmentTracker:
    """Counts strikes, locks and unlocks attempts and scores submissions."""

    def __init__(self, max_strikes: int = 3):
        self.max_strikes = max_strikes

    def _outcome(
        self, state: AssessmentAttemptState, rejection: Optional[str] = None, message: Optional[str] = None
    ) -> AssessmentOutcome:
        return AssessmentOutcome(
            accepted=rejection is None,
            rejection=rejection,
            message=message,
            status=state.status,
            strikes=state.strikes,
            score=state.score,
        )

    def _blocked(self, state: AssessmentAttemptState) -> Optional[AssessmentOutcome]:
        if state.status == AttemptStatus.LOCKED:
            return self._outcome(state, "locked", "This test is locked. Ask your mentor to unlock it.")
        if state.status == AttemptStatus.COMPLETED:
            return self._outcome(state, "completed", "You have already completed this test.")
        return None

    def resume(self, state: AssessmentAttemptState) -> AssessmentOutcome:
        """Check that a started attempt may continue."""
        return self._blocked(state) or self._outcome(state)

    def record_strike(self, state: AssessmentAttemptState) -> AssessmentOutcome:
        """
        Count a proctoring violation, e.g. leaving the test window.

        Reaching ``max_strikes`` locks the attempt.
        """
        blocked = self._blocked(state)
        if blocked:
            return blocked
        state.strikes += 1
        if state.strikes >= self.max_strikes:
            state.status = AttemptStatus.LOCKED
            logger.info(f"Attempt locked after {state.strikes} strikes")
            return self._outcome(state, message="Strike limit reached. The test is now locked.")
        remaining = self.max_strikes - state.strikes
        return self._outcome(state, message=f"Warning: {remaining} strike(s) left before the test locks.")

    def unlock(self, state: AssessmentAttemptState) -> AssessmentOutcome:
        """Mentor override: reopen a locked attempt and reset its strikes."""
        if state.status != AttemptStatus.LOCKED:
            return self._outcome(state, "not_locked", f"Test is not locked (status: {state.status})")
        state.status = AttemptStatus.IN_PROGRESS
        state.strikes = 0
        return self._outcome(state)

    @staticmethod
    def grade(keys: List[AnswerKey], answers: Dict[int, Answer]) -> Tuple[int, float]:
        """
        Score answers against the keys.

        Returns:
            Tuple of (correct answers, percentage score rounded to two places)
        """
        correct = sum(1 for key in keys if is_correct(key, answers.get(key.question_id)))
        score = round(correct / len(keys) * 100, 2) if keys else 0.0
        return correct, score

    def complete(
        self,
        state: AssessmentAttemptState,
        keys: List[AnswerKey],
        answers: Dict[int, Answer],
        now: datetime,
    ) -> AssessmentOutcome:
        """Grade the submission and close the attempt."""
        blocked = self._blocked(state)
        if blocked:
            return blocked
        state.correct_answers, state.score = self.grade(keys, answers)
        state.status = AttemptStatus.COMPLETED
        state.completed_at = now
        logger.info(f"Attempt completed: {state.correct_answers}/{len(keys)} correct")
        return self._outcome(state)
