"""
Pydantic schemas for mentor tests.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MentorTestCreate(BaseModel):
    """Schema for creating a test (mentor)."""

    title: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class QuestionIn(BaseModel):
    """MCQ or short-answer question supplied by a mentor."""

    text: str = Field(..., min_length=1)
    question_type: Literal["mcq", "short_answer"] = "mcq"
    options: Optional[List[str]] = None
    correct_answer_index: Optional[int] = None
    short_answers: Optional[List[str]] = None
    time_limit: int = Field(..., ge=10, description="Seconds")

    @model_validator(mode="after")
    def check_answer_key(self) -> "QuestionIn":
        """An MCQ needs options and a valid answer index; a short answer needs accepted answers."""
        if self.question_type == "mcq":
            options = [option for option in (self.options or []) if option and option.strip()]
            if len(options) < 2:
                raise ValueError("An MCQ needs at least two options")
            if self.correct_answer_index is None or not 0 <= self.correct_answer_index < len(options):
                raise ValueError("correct_answer_index must point at one of the options")
            self.options = options
            self.short_answers = None
        else:
            answers = [answer.strip() for answer in (self.short_answers or []) if answer and answer.strip()]
            if not answers:
                raise ValueError("A short-answer question needs at least one accepted answer")
            self.short_answers = answers
            self.options = None
            self.correct_answer_index = None
        return self


class QuestionSummary(BaseModel):
    """Question as listed under a test."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    time_limit: int


class QuestionDetail(QuestionSummary):
    """Full question including its answer key (mentor only)."""

    question_type: str
    options: Optional[List[str]] = None
    correct_answer_index: Optional[int] = None
    short_answers: Optional[List[str]] = None


class QuestionForUser(QuestionSummary):
    """Question as shown while taking a test; no answer key."""

    question_type: str
    options: Optional[List[str]] = None


class MentorTestOut(BaseModel):
    """Test as returned to its mentor."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    is_active: bool
    created_at: Optional[datetime] = None
    questions: List[QuestionSummary] = Field(default_factory=list)


class MentorTestListing(BaseModel):
    """Active test as listed for learners."""

    id: int
    title: str
    question_count: int


class AssessmentAttemptOut(BaseModel):
    """A user's attempt at a test."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    test_id: int
    status: str
    strikes: int
    score: float
    correct_answers: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class StartTestRequest(BaseModel):
    password: str = Field(..., min_length=1)


class StartTestResponse(BaseModel):
    """The attempt and the questions to answer."""

    test_id: int
    title: str
    attempt: AssessmentAttemptOut
    questions: List[QuestionForUser]


class StrikeResult(BaseModel):
    status: str
    strikes: int
    message: Optional[str] = None


class SubmitTestRequest(BaseModel):
    """Answers keyed by question id: an option index for MCQs, text for short answers."""

    answers: Dict[int, Union[int, str]] = Field(default_factory=dict)


class MentorAttemptRow(BaseModel):
    """One row of the mentor's attempt monitor."""

    user_id: int
    username: str
    attempt_id: int
    status: str
    strikes: int
    score: float
    started_at: Optional[datetime] = None


class AssessmentLeaderboardEntry(BaseModel):
    position: int
    user_id: int
    username: str
    score: float
    completed_at: Optional[datetime] = None


class AssessmentLeaderboardResponse(BaseModel):
    test_title: str
    leaderboard: List[AssessmentLeaderboardEntry]


class UnlockAttemptRequest(BaseModel):
    user_id: int
    attempt_id: int
