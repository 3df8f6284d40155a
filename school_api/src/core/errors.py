"""
Application error types raised by services and repositories.

Each error carries the HTTP status and machine-readable type used by the global
exception handler in src.api.main to build the ErrorResponse envelope.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for expected, client-facing failures."""

    status_code: int = 400
    error_type: str = "bad_request"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(AppError):
    """Input is well-formed but violates a business rule (400)."""

    status_code = 400
    error_type = "bad_request"


class PermissionDeniedError(AppError):
    """Caller is authenticated but not allowed to perform the action (403)."""

    status_code = 403
    error_type = "forbidden"


class NotFoundError(AppError):
    """A referenced record does not exist (404)."""

    status_code = 404
    error_type = "not_found"


class ConflictError(AppError):
    """A uniqueness rule would be violated (409)."""

    status_code = 409
    error_type = "conflict"
