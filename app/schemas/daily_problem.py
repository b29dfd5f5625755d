"""
Pydantic schemas for daily problems.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HiddenTestCaseIn(BaseModel):
    """Hidden test case."""

    input: str = ""
    expected_output: str


class DailyProblemCreate(BaseModel):
    """Schema for creating a daily problem (mentor)."""

    subject: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    boilerplate_code: str = ""
    solution_code: str = Field(..., min_length=1)
    language: str = "javascript"
    test_cases: List[HiddenTestCaseIn] = Field(..., min_length=1)
    points_first_attempt: int = Field(default=20, ge=0)
    points_second_attempt: int = Field(default=15, ge=0)
    points_on_failure: int = Field(default=10, ge=0)
    is_active: bool = False


class DailyProblemSummary(BaseModel):
    """Active problem lookup result."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    subject: str


class DailyProblemDetail(BaseModel):
    """Problem as shown to a user; the solution only appears once the attempt is locked."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    subject: str
    title: str
    description: str
    boilerplate_code: Optional[str] = ""
    language: str
    points_first_attempt: int
    points_second_attempt: int
    points_on_failure: int
    is_active: bool
    solution_code: Optional[str] = None


class AttemptView(BaseModel):
    """A user's attempt on a problem."""

    model_config = ConfigDict(from_attributes=True)

    run_count: int = 0
    is_locked: bool = False
    passed: bool = False
    points_awarded: int = 0
    last_results: Optional[str] = None
    mentor_feedback: Optional[str] = None
    feedback_read: bool = False
    last_attempted_at: Optional[datetime] = None


class MentorAttemptView(AttemptView):
    """Attempt with the submitted code and owner, for mentor review."""

    user_id: int
    username: Optional[str] = None
    last_submitted_code: Optional[str] = None


class SubmissionRequest(BaseModel):
    """Schema for a code submission."""

    problem_id: int
    submitted_code: str = Field(..., min_length=1)


class SubmissionResult(BaseModel):
    """Final state after a submission."""

    passed: bool
    is_locked: bool
    run_count: int
    last_results: Optional[str] = None
    solution_code: Optional[str] = None
    points_awarded: int


class FeedbackRequest(BaseModel):
    """Mentor feedback on an attempt."""

    feedback: str = Field(..., min_length=1)
