"""Time source shared by the token authority and the rate limiter.

Components take a ``Clock`` (any zero-argument callable returning UNIX time
in seconds) instead of reading the system clock, so tests can freeze or
advance time with ``Mock(return_value=...)``.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]

system_clock: Clock = time.time


def unix_seconds(clock: Clock) -> int:
    """Return the clock's current time truncated to whole seconds."""
    return int(clock())
