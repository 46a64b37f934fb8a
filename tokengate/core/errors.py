"""Application-level exception types.

Domain errors raised by the token authority and the HTTP layer. The global
exception handlers turn them into consistent JSON responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    field: str
    retry_after: int
    remaining: int
    request_id: str
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
    """Raised when request input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication fails."""


class InvalidTokenError(AuthenticationAppError):
    """Raised for any token that fails verification.

    Malformed, forged and expired tokens all raise this same error with the
    same message, so callers cannot tell which check failed.
    """

    def __init__(self) -> None:
        super().__init__(code="invalid_token", message="Invalid or expired token")


@dataclass
class RateLimitAppError(AppError):
    """Raised by the HTTP layer when a caller's budget is exhausted.

    Attributes:
        headers: Rate limit headers (X-RateLimit-*, Retry-After) to send with
            the 429 response.
    """

    headers: dict[str, str] | None = None
