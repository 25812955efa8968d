"""Application-level exception types.

This module defines the closed error taxonomy used across the pipeline,
services and adapters, together with the single category -> HTTP status
table and the client-facing messages for each category.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorCategory(str, Enum):
    """Stable, machine-readable error category exposed to clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    EMAIL_ERROR = "EMAIL_ERROR"
    API_ERROR = "API_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"


HTTP_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION_ERROR: 400,
    ErrorCategory.FORBIDDEN: 403,
    ErrorCategory.RATE_LIMIT_ERROR: 429,
    ErrorCategory.EMAIL_ERROR: 502,
    ErrorCategory.API_ERROR: 502,
    ErrorCategory.SYSTEM_ERROR: 500,
}

USER_MESSAGE_BY_CATEGORY: dict[ErrorCategory, str] = {
    ErrorCategory.VALIDATION_ERROR: "Please check your input and try again.",
    ErrorCategory.FORBIDDEN: "Access denied.",
    ErrorCategory.RATE_LIMIT_ERROR: "Too many requests. Please wait a moment before trying again.",
    ErrorCategory.EMAIL_ERROR: (
        "There was an issue sending the email. Please try again or contact us directly."
    ),
    ErrorCategory.API_ERROR: (
        "Our AI assistant is temporarily unavailable. Please try again later."
    ),
    ErrorCategory.SYSTEM_ERROR: "Something went wrong. Please try again later.",
}

# Categories whose own message is safe to show to the client as-is.
CLIENT_SAFE_CATEGORIES = frozenset(
    {
        ErrorCategory.VALIDATION_ERROR,
        ErrorCategory.FORBIDDEN,
        ErrorCategory.RATE_LIMIT_ERROR,
    }
)


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Only rendered to clients in development mode, except for the keys the
    exception handlers promote explicitly (``fields``).
    """

    hint: str
    fields: list[dict[str, str]]
    upstream: str
    timeout_s: float
    limit_class: str
    origin: str
    referer: str
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

    category: ClassVar[ErrorCategory] = ErrorCategory.SYSTEM_ERROR

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_CATEGORY[self.category]

    @property
    def retryable(self) -> bool:
        """Upstream failures may succeed if the client retries later."""
        return self.category in (ErrorCategory.EMAIL_ERROR, ErrorCategory.API_ERROR)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""

    category = ErrorCategory.VALIDATION_ERROR


class ForbiddenAppError(AppError):
    """Raised when the request origin is not allowed."""

    category = ErrorCategory.FORBIDDEN


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeds a rate limit class."""

    retry_after_seconds: int = 0

    category = ErrorCategory.RATE_LIMIT_ERROR


class EmailAppError(AppError):
    """Raised when the email transport fails."""

    category = ErrorCategory.EMAIL_ERROR


class LLMAppError(AppError):
    """Raised when the generative-AI provider fails or times out."""

    category = ErrorCategory.API_ERROR


class SystemAppError(AppError):
    """Raised on internal failures such as misconfiguration."""

    category = ErrorCategory.SYSTEM_ERROR
