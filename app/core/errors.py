"""Application-level exception types.

This module defines domain errors raised by services, dependencies and
adapters. The exception handlers translate each family to an HTTP status and
a standard error envelope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for logs.

    Details never reach the response body; the envelope only exposes the
    message and the code.
    """

    hint: str
    limit: int
    remaining: int
    reset_time: float
    link_id: str
    short_code: str
    field: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class AuthenticationAppError(AppError):
    """Raised when the caller is not authenticated."""


class PermissionAppError(AppError):
    """Raised when an authenticated caller acts on a resource it does not own."""


class NotFoundAppError(AppError):
    """Raised when a link does not exist, is disabled or has expired."""


class ConflictAppError(AppError):
    """Raised when a requested alias or code is already taken."""


class RateLimitExceededAppError(AppError):
    """Raised by the admission dependency when a client exhausted its window."""


class RateLimitBackendError(AppError):
    """Raised inside the remote limiter when the store answers unexpectedly.

    Always caught by the limiter itself and converted to a fail-open result.
    """
