"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock per key, plus a registry lock that only guards
  insertion and eviction of key states.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from dataclasses import dataclass, field

from tokengate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    RateLimitSnapshot,
)
from tokengate.core.clock import Clock, system_clock


@dataclass
class _KeyState:
    hits: deque[float] = field(default_factory=deque)
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Set under ``lock`` once the state is dropped from the registry.
    retired: bool = False


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a sliding log of admission timestamps per key.

    An admission counts against its key for exactly ``window_seconds``, so no
    trailing window of that width ever holds more than ``limit`` admissions,
    and a denied key becomes admissible again as soon as its oldest admission
    ages out. Memory per key is bounded by ``limit`` timestamps; keys idle for
    a full window are evicted (see ``prune``).

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the sliding window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._state_by_key: dict[str, _KeyState] = {}
        self._last_sweep: float | None = None

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._state_by_key)

    def _get_or_create_state(self, key: str) -> _KeyState:
        with self._registry_lock:
            now = self._clock()
            if self._last_sweep is None:
                self._last_sweep = now
            elif now - self._last_sweep >= self._window_seconds:
                self._prune_locked(now)

            state = self._state_by_key.get(key)
            if state is None:
                state = _KeyState()
                self._state_by_key[key] = state
            return state

    def _drop_expired(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _reset_at(self, hits: deque[float] | list[float], now: float) -> int:
        """Second at which every counted admission has left the window."""
        if not hits:
            return int(now)
        return int(math.ceil(hits[-1] + self._window_seconds))

    def _retry_after(self, hits: deque[float], now: float, cost: int) -> int:
        """Seconds until enough admissions expire for ``cost`` more to fit."""
        # cost <= limit, so 1 <= overflow <= len(hits) whenever a request is blocked
        overflow = len(hits) + cost - self._limit
        frees_at = hits[overflow - 1] + self._window_seconds
        return max(1, int(math.ceil(frees_at - now)))

    def _build_allowed_result(self, *, remaining: int, reset_at: int) -> RateLimitResult:
        """Build a RateLimitResult for an allowed request."""
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=remaining,
            reset_at=reset_at,
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, *, remaining: int, reset_at: int, retry_after: int) -> RateLimitResult:
        """Build a RateLimitResult for a blocked request."""
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=remaining,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        The check and the recording of the admission run under the key's lock,
        so concurrent callers sharing a key can never be admitted past the
        limit. Denied attempts leave the key's state untouched.

        Args:
            key: Discriminator for rate limiting. Any string, including "".
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._limit:
            raise ValueError("cost must be <= limit")

        while True:
            state = self._get_or_create_state(key)
            with state.lock:
                if state.retired:
                    # Evicted between lookup and lock; resolve a fresh state.
                    continue

                now = self._clock()
                hits = state.hits
                self._drop_expired(hits, now)

                if len(hits) + cost <= self._limit:
                    hits.extend([now] * cost)
                    return self._build_allowed_result(
                        remaining=self._limit - len(hits),
                        reset_at=self._reset_at(hits, now),
                    )

                return self._build_blocked_result(
                    remaining=max(0, self._limit - len(hits)),
                    reset_at=self._reset_at(hits, now),
                    retry_after=self._retry_after(hits, now, cost),
                )

    def peek(self, key: str) -> RateLimitSnapshot:
        """Report remaining budget and full-reset time without mutating state.

        Unknown keys are reported as having the full budget; no state is
        created for them.
        """
        with self._registry_lock:
            state = self._state_by_key.get(key)

        if state is None:
            return RateLimitSnapshot(remaining=self._limit, reset_at=int(self._clock()))

        with state.lock:
            now = self._clock()
            cutoff = now - self._window_seconds
            live = [hit for hit in state.hits if hit > cutoff]

        return RateLimitSnapshot(
            remaining=max(0, self._limit - len(live)),
            reset_at=self._reset_at(live, now),
        )

    def _prune_locked(self, now: float) -> int:
        cutoff = now - self._window_seconds
        evicted = 0
        for key, state in list(self._state_by_key.items()):
            with state.lock:
                if state.hits and state.hits[-1] > cutoff:
                    continue
                state.retired = True
            del self._state_by_key[key]
            evicted += 1
        self._last_sweep = now
        return evicted

    def prune(self, now: float | None = None) -> int:
        """Evict keys with no admissions inside the current window.

        Runs automatically at most once per window from ``consume``; exposed
        for callers that want to bound memory on their own schedule.

        Args:
            now: Reference time; defaults to the limiter's clock.

        Returns:
            Number of evicted keys.
        """
        with self._registry_lock:
            return self._prune_locked(self._clock() if now is None else now)
