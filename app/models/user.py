"""
User model: account, role and the progress aggregate.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.security import get_password_hash
from app.db.base import Base


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="user")  # user, mentor, admin
    is_active = Column(Boolean, default=True)
    is_email_verified = Column(Boolean, default=False)

    # Progress aggregate (see app.core.progress.schemas)
    progress = Column(JSON, nullable=False, default=dict)  # topic id -> UserProgressEntry
    stats = Column(JSON, nullable=False, default=dict)  # UserStats
    learning_path = Column(JSON, nullable=False, default=dict)  # LearningPath

    # Optimistic concurrency: every UPDATE checks and bumps this
    version_id = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    daily_activity = relationship("DailyActivity", back_populates="user", cascade="all, delete-orphan")
    daily_problem_attempts = relationship(
        "DailyProblemAttempt", back_populates="user", cascade="all, delete-orphan"
    )
    test_attempts = relationship("MentorTestAttempt", back_populates="user", cascade="all, delete-orphan")
    doubts = relationship(
        "Doubt", back_populates="user", cascade="all, delete-orphan", foreign_keys="Doubt.user_id"
    )

    __mapper_args__ = {"version_id_col": version_id}

    def set_password(self, password: str) -> None:
        """Hash and store a new password. Nothing else about the user changes."""
        self.hashed_password = get_password_hash(password)
