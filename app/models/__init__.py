"""Models module - Import all models here so metadata sees every table."""
from app.db.base import Base
from app.models.user import User
from app.models.topic import Topic, TopicAlgorithm
from app.models.daily_problem import DailyProblem, DailyProblemAttempt
from app.models.activity import DailyActivity, LeaderboardSnapshot
from app.models.assessment import MentorTest, MentorTestAttempt, MentorTestQuestion
from app.models.doubt import Doubt, DoubtMessage

__all__ = [
    "Base",
    "User",
    "Topic",
    "TopicAlgorithm",
    "DailyProblem",
    "DailyProblemAttempt",
    "DailyActivity",
    "LeaderboardSnapshot",
    "MentorTest",
    "MentorTestQuestion",
    "MentorTestAttempt",
    "Doubt",
    "DoubtMessage",
]
