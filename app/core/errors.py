"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent across the codebase
    without forcing every raise site to fill them.
    """

    code: str
    message: str
    hint: str
    resource: str
    resource_id: str
    max_bytes: int
    actual_bytes: int
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


class ValidationAppError(AppError):
    """Raised when request input fails validation."""


class ForbiddenAppError(AppError):
    """Raised when the principal may not access the resource."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


class StorageAppError(AppError):
    """Raised when blob storage or persistence operations fail."""


class PayloadTooLargeAppError(ValidationAppError):
    """Raised when a request body exceeds the configured size limit."""
