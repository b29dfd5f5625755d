"""
Mentor-authored tests, their questions and per-user attempts.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, Float, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.security import get_password_hash, verify_password
from app.db.base import Base


class MentorTest(Base):
    """Password-protected test owned by a mentor."""

    __tablename__ = "mentor_tests"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, default=False)  # inactive tests are drafts
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    questions = relationship(
        "MentorTestQuestion",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="MentorTestQuestion.position",
    )
    attempts = relationship("MentorTestAttempt", back_populates="test", cascade="all, delete-orphan")

    def set_password(self, password: str) -> None:
        self.hashed_password = get_password_hash(password)

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.hashed_password)


class MentorTestQuestion(Base):
    """MCQ or short-answer question with a per-question time limit."""

    __tablename__ = "mentor_test_questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("mentor_tests.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    question_type = Column(String, nullable=False, default="mcq")  # mcq, short_answer
    options = Column(JSON, nullable=True)  # mcq only
    correct_answer_index = Column(Integer, nullable=True)  # mcq only
    short_answers = Column(JSON, nullable=True)  # short_answer only
    time_limit = Column(Integer, nullable=False)  # seconds
    position = Column(Integer, default=0)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    test = relationship("MentorTest", back_populates="questions")


class MentorTestAttempt(Base):
    """One user's attempt at a test; strikes lock it until a mentor unlocks it."""

    __tablename__ = "mentor_test_attempts"
    __table_args__ = (UniqueConstraint("user_id", "test_id", name="uq_test_attempt_user_test"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    test_id = Column(Integer, ForeignKey("mentor_tests.id", ondelete="CASCADE"), nullable=False)

    status = Column(String, nullable=False, default="inprogress")  # inprogress, locked, completed
    strikes = Column(Integer, nullable=False, default=0)
    score = Column(Float, nullable=False, default=0.0)  # percentage
    correct_answers = Column(Integer, nullable=False, default=0)
    answers = Column(JSON, nullable=True)  # question id -> submitted answer

    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="test_attempts")
    test = relationship("MentorTest", back_populates="attempts")
