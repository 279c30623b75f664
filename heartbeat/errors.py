"""Application error taxonomy.

Every error a handler can classify derives from :class:`AppError` and carries
the HTTP status it maps to. Anything else reaching the top level is reported
as a generic 500.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        debug: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.debug = debug
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(AppError):
    """Bad credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid username or password"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    """Uniqueness violation. Reported as 400, matching the mobile client."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Username already taken"


class StorageUnavailableError(AppError):
    """Store not configured, unreachable, or too slow to answer."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database not configured"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
