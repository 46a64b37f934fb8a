from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Body of ``POST /api/token``.

    ``user_id`` is typed loosely so the route can answer a missing, empty or
    non-string value with its own 400 error instead of a generic 422.
    """

    user_id: Any = Field(None, description="Identity to mint the token for")


class TokenResponse(BaseModel):
    token: str = Field(..., description="Signed bearer token")
    user_id: str
    expires_in: int = Field(..., description="Token lifetime in seconds")
    type: Literal["bearer"] = "bearer"


class RateLimitStatusResponse(BaseModel):
    limit: int = Field(..., description="Maximum requests per window")
    remaining: int = Field(..., description="Requests left in the current window")
    reset_at: int = Field(..., description="UNIX time at which the budget is fully restored")
