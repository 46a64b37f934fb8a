from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from tokengate.adapters.rate_limit.base import HEADER_LIMIT, HEADER_REMAINING, HEADER_RESET
from tokengate.core.auth import Identity, get_token_authority, require_identity
from tokengate.core.errors import ValidationAppError
from tokengate.core.logging import hash_for_log
from tokengate.core.rate_limit import (
    check_rate_limit,
    get_rate_limiter,
    get_settings,
    token_generation_key,
)
from tokengate.schemas.token import RateLimitStatusResponse, TokenRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Tokens"])


def _require_user_id(payload: TokenRequest | None) -> str:
    """Normalize the requested user id or raise a 400-mapped error."""
    raw = payload.user_id if payload is not None else None
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raw = None
    user_id = str(raw) if raw is not None else ""
    if not user_id:
        raise ValidationAppError(
            code="user_id_required",
            message="user_id is required",
            details={"field": "user_id"},
        )
    return user_id


@router.post("/token", response_model=TokenResponse)
async def generate_token(
    request: Request,
    response: Response,
    payload: TokenRequest | None = None,
) -> TokenResponse:
    """Mint a bearer token for ``user_id``.

    Issuance is rate limited per requested user id so a single identity
    cannot be used to flood the service with fresh tokens.

    Raises:
        ValidationAppError: 400 when user_id is missing or empty.
        RateLimitAppError: 429 when the token generation budget is exhausted.
    """
    user_id = _require_user_id(payload)

    headers = check_rate_limit(
        get_rate_limiter(request),
        get_settings(request),
        token_generation_key(user_id),
        detail="Token generation rate limit exceeded",
    )
    response.headers.update(headers)

    authority = get_token_authority(request)
    token = authority.mint(user_id)
    logger.info(
        "token.issued",
        extra={
            "user_hash": hash_for_log(user_id),
            "ttl_s": authority.ttl_seconds,
        },
    )

    return TokenResponse(
        token=token,
        user_id=user_id,
        expires_in=authority.ttl_seconds,
    )


@router.get("/rate-limit", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    request: Request,
    identity: Annotated[Identity, Depends(require_identity)],
) -> RateLimitStatusResponse:
    """Report the caller's remaining budget without consuming any of it."""
    headers = get_rate_limiter(request).get_headers(identity.user_id)
    return RateLimitStatusResponse(
        limit=headers[HEADER_LIMIT],
        remaining=headers[HEADER_REMAINING],
        reset_at=headers[HEADER_RESET],
    )
