"""
Daily activity and leaderboard snapshot models.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class DailyActivity(Base):
    """Per-user, per-day learning activity; drives the streak."""

    __tablename__ = "daily_activity"
    __table_args__ = (UniqueConstraint("user_id", "activity_date", name="uq_activity_user_date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_date = Column(Date, nullable=False, index=True)
    time_spent = Column(Integer, default=0)  # minutes
    algorithms_attempted = Column(Integer, default=0)
    algorithms_completed = Column(Integer, default=0)
    points_earned = Column(Integer, default=0)
    topics_studied = Column(JSON, nullable=False, default=list)

    # Relationships
    user = relationship("User", back_populates="daily_activity")


class LeaderboardSnapshot(Base):
    """Cached ranking, regenerated when stale."""

    __tablename__ = "leaderboards"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, unique=True, nullable=False)  # all-time, daily-practice
    rankings = Column(JSON, nullable=False, default=list)
    last_updated = Column(DateTime(timezone=True), server_default=func.now())
