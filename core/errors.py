"""
core/errors.py -- Domain error taxonomy shared by every layer.

Stores, the auth gate and route handlers raise these; api/main.py owns the
single exception handler that turns them into the JSON error envelope. Each
class carries its HTTP status and a stable machine-readable code so the
transport layer never has to guess.

Layer rule: core/ is the kernel. No imports from api/, auth/, or forum/.
"""

from __future__ import annotations


class ForumError(Exception):
    """Base class for all expected, client-reportable failures."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, code: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(self.message)


class ValidationError(ForumError):
    """Missing or malformed input."""

    status_code = 400
    code = "validation_error"
    default_message = "Request validation failed."


class Conflict(ForumError):
    """Duplicate unique value or a concurrent state change.

    Reported as 400 rather than 409 so existing clients that only branch on
    400 keep working.
    """

    status_code = 400
    code = "conflict"
    default_message = "The resource already exists."


class Unauthenticated(ForumError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required."


class InvalidToken(Unauthenticated):
    code = "invalid_token"
    default_message = "The access token is invalid or has expired."


class InactiveAccount(Unauthenticated):
    code = "inactive_account"
    default_message = "This account has been deactivated."


class Forbidden(ForumError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action."


class NotFound(ForumError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class Internal(ForumError):
    """A write could not be completed; the caller may retry."""
