"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the limiter lives on ``app.state`` behind
  ``AbstractRateLimiter`` and can be replaced (e.g., Redis) without touching
  routes.
- Metadata: allowed and blocked responses both carry X-RateLimit-* headers.

Rate limiting strategy:
- Authenticated routes: sliding-window limit per identity.
- Token issuance: separate budget per requested user id
  (``token_gen_<user_id>``) to throttle token minting abuse.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request, Response

from tokengate.adapters.rate_limit.base import AbstractRateLimiter
from tokengate.core.auth import Identity, require_identity
from tokengate.core.config import Settings
from tokengate.core.errors import RateLimitAppError
from tokengate.core.logging import hash_for_log

logger = logging.getLogger(__name__)

TOKEN_GENERATION_KEY_PREFIX = "token_gen_"


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def token_generation_key(user_id: str) -> str:
    return f"{TOKEN_GENERATION_KEY_PREFIX}{user_id}"


def check_rate_limit(
    limiter: AbstractRateLimiter,
    app_settings: Settings,
    key: str,
    *,
    detail: str = "Rate limit exceeded. Try again later.",
) -> dict[str, str]:
    """Consume one unit for ``key`` or raise HTTP 429.

    Args:
        limiter: Rate limiter to consume from.
        app_settings: Settings controlling enablement and header emission.
        key: Limiter discriminator.
        detail: Error message used when the request is rejected.

    Returns:
        Rate limit headers to attach to the successful response (empty when
        limiting or headers are disabled).

    Raises:
        RateLimitAppError: Rendered as 429 Too Many Requests when the budget
            is exhausted.
    """
    cfg = app_settings.app
    if not cfg.rate_limit_enabled:
        return {}

    key_hash = hash_for_log(key)
    result = limiter.consume(key)
    headers: dict[str, str] = {}
    if cfg.rate_limit_include_headers:
        headers = {name: str(value) for name, value in limiter.get_headers(key).items()}

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": cfg.rate_limit_window_seconds,
            },
        )
        return headers

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": cfg.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    if cfg.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message=detail,
        details={"retry_after": retry_after, "remaining": result.remaining},
        headers=headers or None,
    )


async def enforce_rate_limit(
    request: Request,
    response: Response,
    identity: Annotated[Identity, Depends(require_identity)],
) -> None:
    """FastAPI dependency enforcing the per-identity rate limit.

    Consumes one unit from the caller's budget and copies the resulting
    X-RateLimit-* headers onto the response.

    Raises:
        RateLimitAppError: 429 Too Many Requests when rate limit is exceeded.
    """
    headers = check_rate_limit(
        get_rate_limiter(request),
        get_settings(request),
        identity.user_id,
    )
    response.headers.update(headers)
