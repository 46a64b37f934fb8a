"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the process's token authority and rate limiter. Both are created here
and stored on ``app.state`` rather than as module globals, so tests and
alternative deployments can inject their own instances.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from tokengate.adapters.rate_limit.base import AbstractRateLimiter
from tokengate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from tokengate.api.routes import health_router, time_router, token_router
from tokengate.core.clock import Clock, system_clock
from tokengate.core.config import Settings, settings as default_settings
from tokengate.core.exception_handlers import setup_exception_handlers
from tokengate.core.logging import configure_logging
from tokengate.core.middleware import request_id_middleware
from tokengate.core.openapi import apply_openapi_customizations
from tokengate.services.time_service import TimeService
from tokengate.services.token_authority import TokenAuthority

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    *,
    clock: Clock = system_clock,
    token_authority: TokenAuthority | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones.
        clock: Time source shared by the default authority, limiter and time
            service.
        token_authority: Pre-built authority (overrides token settings).
        rate_limiter: Pre-built limiter (overrides rate limit settings).

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Tokengate API",
        description=(
            "Stateless HMAC-signed bearer tokens and per-identity sliding-window "
            "rate limiting. Issue a token with POST /api/token, then call "
            "authenticated endpoints with Authorization: Bearer <token>."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
    )

    app.state.settings = cfg
    app.state.token_authority = token_authority or TokenAuthority(
        secret_key=cfg.token.secret_key,
        ttl_seconds=cfg.token.ttl_seconds,
        clock=clock,
    )
    app.state.rate_limiter = rate_limiter or InMemorySlidingWindowRateLimiter(
        limit=cfg.app.rate_limit_requests,
        window_seconds=cfg.app.rate_limit_window_seconds,
        clock=clock,
    )
    app.state.time_service = TimeService(clock=clock)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(token_router)
    app.include_router(time_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "app_env": cfg.app_env,
            "rate_limit_enabled": cfg.app.rate_limit_enabled,
            "rate_limit_requests": cfg.app.rate_limit_requests,
            "rate_limit_window_s": cfg.app.rate_limit_window_seconds,
            "token_ttl_s": cfg.token.ttl_seconds,
        },
    )
    return app
