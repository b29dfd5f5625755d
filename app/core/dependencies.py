"""
Dependency injection for FastAPI endpoints.
"""
from typing import Callable, Optional, cast

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import decode_token
from app.db.base import get_db
from app.models.user import User
from app.services.execution import ExecutionClient

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/login")

_execution_client: Optional[ExecutionClient] = None


def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        db: Database session
        token: JWT token

    Returns:
        Current user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        raise credentials_exception
    user_id: Optional[str] = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exception

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise credentials_exception

    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get current active user.

    Raises:
        HTTPException: If user is inactive
    """
    if not cast(bool, current_user.is_active):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_role(*roles: str) -> Callable[..., User]:
    """Dependency factory restricting an endpoint to the given roles."""

    def _check(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(roles)}",
            )
        return current_user

    return _check


def get_execution_client() -> ExecutionClient:
    """Shared client for the code execution service."""
    global _execution_client
    if _execution_client is None:
        _execution_client = ExecutionClient()
    return _execution_client
