"""
Application error taxonomy.

Stores and route handlers raise these; ``api.middleware`` maps them to
HTTP responses of the form ``{"detail": message}``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed fields."""

    status_code = 400


class ConflictError(AppError):
    """A unique field (username, email) is already taken."""

    status_code = 409


class UnauthorizedError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated", **kwargs):
        super().__init__(message, **kwargs)


class ForbiddenError(AppError):
    """Authenticated, but not entitled to the resource."""

    status_code = 403


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, **kwargs):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, **kwargs)


class InvalidTokenError(ValueError):
    """Raised by ``auth.jwt.verify_token``; never reaches the client as-is."""
