"""Application-level exception types.

This module defines domain errors used across services/routes, enabling
consistent error handling, logging, and API responses. Each subclass carries
the HTTP status it is rendered with; ``code`` is the stable string clients
branch on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code (e.g. ``PROJECT_NOT_FOUND``).
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: Any = None

    status_code = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""

    status_code = 400


class AuthenticationAppError(AppError):
    """Raised when credentials are missing."""

    status_code = 401


class PermissionAppError(AppError):
    """Raised when the caller is not allowed to perform the operation."""

    status_code = 403


@dataclass
class NotFoundAppError(AppError):
    """Raised when an entity does not exist.

    Missing path targets render as 404. Entities referenced from a request
    body (``projectId`` on bug creation) are reported with ``status=400``.
    """

    status: int = 404

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self.status


class ConflictAppError(AppError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409


class PayloadTooLargeAppError(AppError):
    """Raised when an upload exceeds the configured size cap."""

    status_code = 413


class UnprocessableAppError(AppError):
    """Raised when a well-formed upload is rejected on content grounds."""

    status_code = 422


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exhausted its request budget."""

    headers: dict[str, str] = field(default_factory=dict)

    status_code = 429
