"""
Pydantic schemas for the topic catalog.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AlgorithmIn(BaseModel):
    """Algorithm definition supplied by an admin."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    difficulty: str
    points: int = Field(..., ge=0)
    is_globally_locked: bool = False


class TopicBase(BaseModel):
    """Base topic schema."""

    name: str = Field(..., min_length=1)
    subject: str = Field(default="DSA Visualizer", min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: int
    estimated_time: int = Field(..., ge=0)
    difficulty: str
    prerequisites: List[str] = Field(default_factory=list)
    is_globally_locked: bool = False
    is_active: bool = True


class TopicCreate(TopicBase):
    """Schema for topic creation."""

    id: str = Field(..., min_length=1)
    algorithms: List[AlgorithmIn] = Field(default_factory=list)


class TopicUpdate(BaseModel):
    """Schema for topic update; only supplied fields change."""

    name: Optional[str] = None
    subject: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None
    estimated_time: Optional[int] = Field(default=None, ge=0)
    difficulty: Optional[str] = None
    prerequisites: Optional[List[str]] = None
    is_active: Optional[bool] = None
    algorithms: Optional[List[AlgorithmIn]] = None


class AlgorithmOut(BaseModel):
    """Algorithm as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    algorithm_id: str
    name: str
    difficulty: Optional[str] = None
    points: int
    position: int
    is_globally_locked: bool


class TopicOut(TopicBase):
    """Topic as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    algorithms: List[AlgorithmOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LockRequest(BaseModel):
    """Lock/unlock target: everyone (``global``) or a single user."""

    model_config = ConfigDict(populate_by_name=True)

    global_: bool = Field(default=False, alias="global")
    user_id: Optional[int] = None


class TopicStatusRow(BaseModel):
    """One row of the admin per-user topic status view."""

    id: str
    name: str
    effective_status: str
    status_text: str
    is_globally_locked: bool
    is_user_locked: bool
