"""Rate limiting adapters.

The HTTP layer depends on ``AbstractRateLimiter`` only, so the in-memory
sliding-window limiter can later be replaced by a shared store without
changing call sites.
"""

from tokengate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    RateLimitSnapshot,
)
from tokengate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "RateLimitResult",
    "RateLimitSnapshot",
]
