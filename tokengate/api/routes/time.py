from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from tokengate.core.auth import Identity, require_identity
from tokengate.core.rate_limit import enforce_rate_limit
from tokengate.schemas.time import CurrentTimeResponse, TimestampResponse
from tokengate.services.time_service import DEFAULT_FORMAT, DEFAULT_TIMEZONE, TimeService

router = APIRouter(prefix="/api", tags=["Time"])

TimezoneQuery = Annotated[
    str,
    Query(
        description="Timezone identifier (e.g., UTC, America/New_York)",
        max_length=64,
    ),
]


def get_time_service(request: Request) -> TimeService:
    return request.app.state.time_service


@router.get(
    "/current-time",
    response_model=CurrentTimeResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def current_time(
    request: Request,
    identity: Annotated[Identity, Depends(require_identity)],
    timezone: TimezoneQuery = DEFAULT_TIMEZONE,
    format: str = Query(
        DEFAULT_FORMAT,
        description="strftime format string (e.g., %Y-%m-%d %H:%M:%S)",
        max_length=128,
    ),
) -> CurrentTimeResponse:
    """Return the current date and time in the requested timezone.

    Requires a bearer token; each call consumes one unit of the caller's
    rate limit budget and the remaining budget is reported in
    X-RateLimit-* headers. Unknown timezones fall back to UTC.
    """
    result = get_time_service(request).now(timezone, format)
    return CurrentTimeResponse(**result, user_id=identity.user_id)


@router.get(
    "/timestamp",
    response_model=TimestampResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def current_timestamp(
    request: Request,
    identity: Annotated[Identity, Depends(require_identity)],
    timezone: TimezoneQuery = DEFAULT_TIMEZONE,
) -> TimestampResponse:
    """Return the current UNIX timestamp; authenticated and rate limited."""
    result = get_time_service(request).timestamp(timezone)
    return TimestampResponse(**result, user_id=identity.user_id)
