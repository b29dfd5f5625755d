"""
Common schemas for API responses.
"""
from typing import Optional

from pydantic import BaseModel


class Message(BaseModel):
    """Generic message response."""

    message: str


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str
    code: Optional[str] = None
