"""
Pydantic schemas for User model.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    """Base user schema."""

    email: EmailStr
    username: str = Field(..., min_length=3)
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for user creation."""

    password: str = Field(..., min_length=6)


class UserInDB(UserBase):
    """Schema for user in database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class User(UserInDB):
    """Schema for user response."""

    pass


class RoleUpdate(BaseModel):
    """Schema for an admin changing a user's role."""

    role: str = Field(..., pattern="^(user|mentor|admin)$")


class Token(BaseModel):
    """Schema for JWT token."""

    access_token: str
    token_type: str
