from __future__ import annotations

from pydantic import BaseModel, Field


class CurrentTimeResponse(BaseModel):
    """Current time rendered for the requested timezone."""

    current_time: str = Field(..., description="Time formatted with the requested strftime pattern")
    timezone: str = Field(..., description="Timezone name actually used (UTC on fallback)")
    timestamp: int = Field(..., description="UNIX timestamp in seconds")
    iso8601: str = Field(..., description="ISO 8601 datetime with offset")
    user_id: str = Field(..., description="Identity the bearer token was issued to")


class TimestampResponse(BaseModel):
    timestamp: int = Field(..., description="UNIX timestamp in seconds")
    timezone: str = Field(..., description="Timezone name actually used (UTC on fallback)")
    unix_timestamp: int = Field(..., description="Same value as timestamp")
    milliseconds: int = Field(..., description="UNIX timestamp in milliseconds (second precision)")
    user_id: str = Field(..., description="Identity the bearer token was issued to")
