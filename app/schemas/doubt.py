"""
Pydantic schemas for doubt threads.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DoubtCreate(BaseModel):
    """Schema for asking a new doubt."""

    subject: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class DoubtReply(BaseModel):
    message: str = Field(..., min_length=1)


class DoubtMessageOut(BaseModel):
    """One message in a thread."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    sender_role: str
    sender_username: Optional[str] = None
    message: str
    created_at: Optional[datetime] = None


class DoubtSummary(BaseModel):
    """Doubt without its messages, for list views."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    subject: str
    title: str
    status: str
    last_replier_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class DoubtThread(DoubtSummary):
    """Doubt with its full conversation."""

    messages: List[DoubtMessageOut] = Field(default_factory=list)


class SubjectList(BaseModel):
    subjects: List[str]
