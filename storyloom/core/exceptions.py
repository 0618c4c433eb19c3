"""Application error taxonomy.

Every error raised by handlers or services carries the HTTP status it maps to.
The exception handlers in ``storyloom.main`` render them as the standard
``{success, message, errors?, error?}`` envelope.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base error for failures that map to a client-visible response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[str] | None = None,
        detail: Any = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        # Diagnostic detail, only exposed outside production.
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-domain input."""

    status_code = 400
    default_message = "Validation error"


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_message = "Authentication failed"


class NotFoundError(AppError):
    """Missing resource, or one the caller does not own."""

    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Duplicate email, duplicate chapter number and the like."""

    status_code = 409
    default_message = "Resource already exists"


class RateLimitExceededError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, *, retry_after: int = 60) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ServiceUnavailableError(AppError):
    """A dependency the request needs is not reachable or not configured."""

    status_code = 503
    default_message = "Service temporarily unavailable"
