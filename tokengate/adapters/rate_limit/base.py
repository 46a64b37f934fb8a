"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

HEADER_LIMIT = "X-RateLimit-Limit"
HEADER_REMAINING = "X-RateLimit-Remaining"
HEADER_RESET = "X-RateLimit-Reset"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Requests still available after this decision.
        reset_at: UNIX epoch seconds when the key's budget is fully restored.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class RateLimitSnapshot(NamedTuple):
    """Read-only view of a key's budget."""

    remaining: int
    reset_at: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum admissions per window."""
        raise NotImplementedError

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Checking and recording happen as one atomic step per key.

        Args:
            key: Discriminator for the limited subject (e.g., identity).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, key: str) -> RateLimitSnapshot:
        """Report the remaining budget for ``key`` without consuming any."""
        raise NotImplementedError

    def is_allowed(self, key: str) -> bool:
        """Consume one unit for ``key`` and return whether it was admitted."""
        return self.consume(key).allowed

    def get_headers(self, key: str) -> dict[str, int]:
        """Build X-RateLimit-* header values for ``key`` without consuming."""
        snapshot = self.peek(key)
        return {
            HEADER_LIMIT: self.limit,
            HEADER_REMAINING: snapshot.remaining,
            HEADER_RESET: snapshot.reset_at,
        }
