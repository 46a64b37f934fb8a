"""Bearer token authentication for FastAPI routes.

Reads ``Authorization: Bearer <token>``, verifies the token with the
application's ``TokenAuthority`` and yields the caller's ``Identity``.

Design principles:
- The authority stays framework-free; this module is the only place that
  knows about headers and HTTP status codes.
- ``authenticate`` holds the logic as a plain function for easy testing;
  ``require_identity`` is the thin FastAPI dependency around it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from tokengate.core.errors import AuthenticationAppError
from tokengate.core.logging import hash_for_log
from tokengate.services.token_authority import TokenAuthority

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class Identity:
    """Authenticated subject of a request."""

    user_id: str


def get_token_authority(request: Request) -> TokenAuthority:
    """Return the authority owned by the running application."""
    return request.app.state.token_authority


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an Authorization header value.

    Args:
        authorization: Raw header value, or None when absent.

    Returns:
        The token string following the ``Bearer`` scheme.

    Raises:
        AuthenticationAppError: If the header is missing, uses another
            scheme, or carries no token.

    Examples:
        >>> extract_bearer_token("Bearer abc.def")
        'abc.def'
        >>> extract_bearer_token("bearer  abc.def ")
        'abc.def'
    """
    if not authorization:
        raise AuthenticationAppError(
            code="missing_bearer_token",
            message="Missing bearer token. Provide an Authorization: Bearer <token> header.",
        )

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token:
        raise AuthenticationAppError(
            code="missing_bearer_token",
            message="Missing bearer token. Provide an Authorization: Bearer <token> header.",
        )
    return token


def authenticate(authority: TokenAuthority, authorization: str | None) -> Identity:
    """Resolve an Authorization header into an Identity.

    Raises:
        AuthenticationAppError: For missing headers; InvalidTokenError (a
            subclass) for tokens that fail verification.
    """
    token = extract_bearer_token(authorization)
    user_id = authority.verify(token)
    return Identity(user_id=user_id)


async def require_identity(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """FastAPI dependency for bearer token authentication.

    Usage:
        @router.get("/protected")
        async def protected(identity: Identity = Depends(require_identity)):
            return {"user_id": identity.user_id}

    Raises:
        HTTPException: 401 with a Bearer challenge if authentication fails.
    """
    authority = get_token_authority(request)
    try:
        identity = authenticate(authority, authorization)
    except AuthenticationAppError as exc:
        logger.warning(
            "auth.failed",
            extra={
                "reason": exc.code,
                "authorization_present": bool(authorization),
            },
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    logger.info(
        "auth.success",
        extra={"user_hash": hash_for_log(identity.user_id)},
    )
    return identity
