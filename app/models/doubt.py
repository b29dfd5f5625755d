"""
Doubt threads between a learner and mentors.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class Doubt(Base):
    """A learner's question in one subject, answered in a message thread."""

    __tablename__ = "doubts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="open", index=True)  # open, closed
    last_replier_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    closed_at = Column(DateTime(timezone=True), nullable=True)
    expire_at = Column(DateTime(timezone=True), nullable=True, index=True)  # purged after this
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doubts", foreign_keys=[user_id])
    messages = relationship(
        "DoubtMessage",
        back_populates="doubt",
        cascade="all, delete-orphan",
        order_by="DoubtMessage.id",
    )


class DoubtMessage(Base):
    """One message in a doubt thread."""

    __tablename__ = "doubt_messages"

    id = Column(Integer, primary_key=True, index=True)
    doubt_id = Column(Integer, ForeignKey("doubts.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_role = Column(String, nullable=False)  # user, mentor
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    doubt = relationship("Doubt", back_populates="messages")
    sender = relationship("User")
