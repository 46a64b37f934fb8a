"""Current time lookup in a caller-selected timezone."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tokengate.core.clock import Clock, system_clock

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"
DEFAULT_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_timezone(name: str | None) -> tuple[str, timezone | ZoneInfo]:
    """Map an IANA name to a tzinfo, falling back to UTC for unknown names.

    Returns:
        Tuple of (canonical name, tzinfo).
    """
    if not name or name.upper() == DEFAULT_TIMEZONE:
        return DEFAULT_TIMEZONE, timezone.utc
    try:
        return name, ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError covers names that resolve to tzdata directories ("America").
        logger.info("time.unknown_timezone", extra={"requested_timezone": name[:64]})
        return DEFAULT_TIMEZONE, timezone.utc


class TimeService:
    """Reads the injected clock and renders it for a timezone."""

    def __init__(self, clock: Clock = system_clock) -> None:
        self._clock = clock

    def now(self, timezone_name: str | None = None, fmt: str | None = None) -> dict:
        """Return the current time.

        Args:
            timezone_name: IANA timezone (e.g. ``America/New_York``).
            fmt: ``strftime`` format for ``current_time``.

        Returns:
            Dict with current_time, timezone, timestamp and iso8601 keys.
        """
        name, tz = resolve_timezone(timezone_name)
        moment = datetime.fromtimestamp(int(self._clock()), tz=tz)
        return {
            "current_time": moment.strftime(fmt or DEFAULT_FORMAT),
            "timezone": name,
            "timestamp": int(moment.timestamp()),
            "iso8601": moment.isoformat(timespec="seconds"),
        }

    def timestamp(self, timezone_name: str | None = None) -> dict:
        """Return the current UNIX timestamp in seconds and milliseconds.

        The timestamp does not depend on the timezone; the resolved name is
        echoed back so clients can confirm which zone was applied.
        """
        name, _ = resolve_timezone(timezone_name)
        seconds = int(self._clock())
        return {
            "timestamp": seconds,
            "timezone": name,
            "unix_timestamp": seconds,
            "milliseconds": seconds * 1000,
        }
