"""
Auth error taxonomy.

Every failure carries a stable machine-readable `code`, a caller-facing
`message`, the HTTP status it maps to and optional diagnostic fields (`extra`)
that are merged into the JSON error body.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AuthError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    headers: Optional[Dict[str, str]] = None

    def __init__(self, code: str, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message, **self.extra}


class Unauthenticated(AuthError):
    """No usable credential: missing, invalid or expired token, unknown subject."""
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(AuthError):
    """Authenticated, but not allowed right now (deactivated, outside window, wrong role)."""
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailure(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AuthError):
    status_code = status.HTTP_409_CONFLICT


# Stable codes
TOKEN_MISSING = "TOKEN_MISSING"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
TOKEN_INVALID = "TOKEN_INVALID"
UNKNOWN_SUBJECT = "UNKNOWN_SUBJECT"
ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
OUTSIDE_ALLOWED_TIME = "OUTSIDE_ALLOWED_TIME"
INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
INCORRECT_PASSWORD = "INCORRECT_PASSWORD"
USER_NOT_FOUND = "USER_NOT_FOUND"
EMAIL_EXISTS = "EMAIL_EXISTS"
NO_FIELDS = "NO_FIELDS"
CANNOT_DELETE_SELF = "CANNOT_DELETE_SELF"


def outside_window_error(message: str, current_time: str, start: Optional[str], end: Optional[str]) -> Forbidden:
    return Forbidden(
        OUTSIDE_ALLOWED_TIME,
        message,
        extra={
            "current_time": current_time,
            "allowed_start_time": start,
            "allowed_end_time": end,
        },
    )
