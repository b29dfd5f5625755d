"""Schemas module - Import all schemas."""
from app.schemas.user import User, UserCreate, UserInDB, RoleUpdate, Token
from app.schemas.topic import TopicCreate, TopicUpdate, TopicOut, AlgorithmIn, LockRequest, TopicStatusRow
from app.schemas.progress import (
    AccessCheckResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
    DashboardResponse,
)
from app.schemas.daily_problem import (
    DailyProblemCreate,
    DailyProblemDetail,
    DailyProblemSummary,
    AttemptView,
    MentorAttemptView,
    SubmissionRequest,
    SubmissionResult,
    FeedbackRequest,
)
from app.schemas.leaderboard import LeaderboardResponse, MyRankResponse, RankingEntry
from app.schemas.assessment import (
    MentorTestCreate,
    MentorTestOut,
    QuestionIn,
    StartTestResponse,
    SubmitTestRequest,
)
from app.schemas.doubt import DoubtCreate, DoubtReply, DoubtSummary, DoubtThread
from app.schemas.common import Message, ErrorResponse

__all__ = [
    "User",
    "UserCreate",
    "UserInDB",
    "RoleUpdate",
    "Token",
    "TopicCreate",
    "TopicUpdate",
    "TopicOut",
    "AlgorithmIn",
    "LockRequest",
    "TopicStatusRow",
    "AccessCheckResponse",
    "ProgressUpdateRequest",
    "ProgressUpdateResponse",
    "DashboardResponse",
    "DailyProblemCreate",
    "DailyProblemDetail",
    "DailyProblemSummary",
    "AttemptView",
    "MentorAttemptView",
    "SubmissionRequest",
    "SubmissionResult",
    "FeedbackRequest",
    "LeaderboardResponse",
    "MyRankResponse",
    "RankingEntry",
    "MentorTestCreate",
    "MentorTestOut",
    "QuestionIn",
    "StartTestResponse",
    "SubmitTestRequest",
    "DoubtCreate",
    "DoubtReply",
    "DoubtSummary",
    "DoubtThread",
    "Message",
    "ErrorResponse",
]
