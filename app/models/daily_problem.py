"""
Daily coding problem and per-user attempt models.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class DailyProblem(Base):
    """Mentor-authored problem with hidden test cases."""

    __tablename__ = "daily_problems"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String, nullable=False, index=True)  # e.g. "DSA Visualizer"
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    boilerplate_code = Column(Text, default="")
    solution_code = Column(Text, nullable=False)
    language = Column(String, nullable=False, default="javascript")
    test_cases = Column(JSON, nullable=False, default=list)  # [{input, expected_output}]

    points_first_attempt = Column(Integer, default=20)
    points_second_attempt = Column(Integer, default=15)
    points_on_failure = Column(Integer, default=10)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    attempts = relationship("DailyProblemAttempt", back_populates="problem", cascade="all, delete-orphan")


class DailyProblemAttempt(Base):
    """Two-runs-then-lock attempt of one user on one problem."""

    __tablename__ = "daily_problem_attempts"
    __table_args__ = (UniqueConstraint("user_id", "problem_id", name="uq_attempt_user_problem"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    problem_id = Column(Integer, ForeignKey("daily_problems.id", ondelete="CASCADE"), nullable=False)

    run_count = Column(Integer, default=0, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    passed = Column(Boolean, default=False, nullable=False)
    points_awarded = Column(Integer, default=0, nullable=False)
    last_submitted_code = Column(Text, nullable=True)
    last_results = Column(Text, nullable=True)  # e.g. "[3 / 5 Test Cases Passed] ..."
    mentor_feedback = Column(Text, nullable=True)
    feedback_read = Column(Boolean, default=False)

    last_attempted_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="daily_problem_attempts")
    problem = relationship("DailyProblem", back_populates="attempts")
