"""
Topic catalog models.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class Topic(Base):
    """Curriculum unit containing an ordered set of algorithms."""

    __tablename__ = "topics"

    id = Column(String, primary_key=True, index=True)  # stable key, e.g. "sorting"
    name = Column(String, nullable=False)
    subject = Column(String, nullable=False, default="DSA Visualizer", index=True)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    estimated_time = Column(Integer, default=0)  # minutes
    difficulty = Column(String, nullable=True)  # beginner, intermediate, advanced
    prerequisites = Column(JSON, nullable=False, default=list)  # list of topic ids
    is_globally_locked = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    algorithms = relationship(
        "TopicAlgorithm",
        back_populates="topic",
        cascade="all, delete-orphan",
        order_by="TopicAlgorithm.position",
    )


class TopicAlgorithm(Base):
    """Algorithm definition inside a topic."""

    __tablename__ = "topic_algorithms"
    __table_args__ = (UniqueConstraint("topic_id", "algorithm_id", name="uq_topic_algorithm"),)

    id = Column(Integer, primary_key=True, index=True)
    topic_id = Column(String, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    algorithm_id = Column(String, nullable=False)  # e.g. "bubbleSort"
    name = Column(String, nullable=False)
    difficulty = Column(String, nullable=True)  # easy, medium, hard
    points = Column(Integer, default=0)
    position = Column(Integer, default=0)
    is_globally_locked = Column(Boolean, default=False)

    # Relationships
    topic = relationship("Topic", back_populates="algorithms")
