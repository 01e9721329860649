"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what applies to it.
    """

    hint: str
    limit: int
    retry_after: int
    max_chars: int
    actual_chars: int
    operation: str
    http_status: int
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
    """Raised when the submitted payload is malformed or incomplete."""


class ForbiddenAppError(AppError):
    """Raised when the visitor has been blocked by a moderator."""


class RateLimitAppError(AppError):
    """Raised when a cadence, window or daily quota check rejects a submission.

    ``details["retry_after"]`` holds the suggested wait in seconds.
    """


class StoreAppError(AppError):
    """Raised when the message store cannot be read or written."""
