"""
Domain error taxonomy.

Each error carries the HTTP status and a short machine-readable code; the
handlers registered in ``app.main`` turn them into JSON responses.
"""
from typing import Optional

from fastapi import status


class LearnStackError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(LearnStackError):
    """A topic, algorithm, problem or user definition does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class AccessDeniedError(LearnStackError):
    """The resolved lock state blocks the requested action."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"

    def __init__(self, detail: str, blocker: Optional[str] = None):
        super().__init__(detail)
        self.blocker = blocker  # "topic", "algorithm" or None


class ValidationError(LearnStackError):
    """Malformed input, e.g. missing required submission fields."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class AlreadyTerminalError(LearnStackError):
    """The daily problem attempt or mentor test attempt is already finished."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "already_terminal"


class InvalidStateError(LearnStackError):
    """The action does not apply to the current state, e.g. replying to a closed doubt."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"


class ConflictError(LearnStackError):
    """A concurrent write won the race for the same user record."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ExternalServiceError(LearnStackError):
    """
    The code execution service failed or answered with garbage.

    ``kind`` is one of ``unreachable``, ``timeout`` or ``malformed-response``.
    These failures are retryable and never count as a submission run.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "external_service_error"

    def __init__(self, detail: str, kind: str = "unreachable"):
        super().__init__(detail)
        self.kind = kind
        if kind == "timeout":
            self.code = "execution_service_timeout"
