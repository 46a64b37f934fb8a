"""Stateless bearer token authority.

Tokens are self-contained: the identity and expiry travel inside the token
and an HMAC-SHA256 signature binds them to the server secret. Nothing is
stored, so validity depends only on the signature, the expiry and the
current time.

Wire format::

    base64(json({"user_id": ..., "expires_at": ..., "issued_at": ...}))
    + "." + lowercase_hex(hmac_sha256(secret, base64_payload))
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass

from tokengate.core.clock import Clock, system_clock, unix_seconds
from tokengate.core.errors import InvalidTokenError

_SEPARATOR = "."


@dataclass(frozen=True)
class TokenClaims:
    """Decoded and verified token payload."""

    user_id: str
    issued_at: int
    expires_at: int


def _encode_payload(claims: TokenClaims) -> str:
    # Compact JSON with "/" escaped keeps minted tokens byte-identical to
    # other issuers sharing the secret.
    raw = json.dumps(
        {
            "user_id": claims.user_id,
            "expires_at": claims.expires_at,
            "issued_at": claims.issued_at,
        },
        separators=(",", ":"),
        ensure_ascii=True,
    ).replace("/", "\\/")
    return base64.b64encode(raw.encode("ascii")).decode("ascii")


def _decode_payload(payload_b64: str) -> dict:
    try:
        raw = base64.b64decode(payload_b64.encode("ascii"), validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeError, binascii.Error, ValueError) as exc:
        raise InvalidTokenError() from exc

    if not isinstance(payload, dict):
        raise InvalidTokenError()
    return payload


def _is_strict_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenAuthority:
    """Mint and verify HMAC-signed identity tokens.

    Instances hold only immutable configuration, so one authority can be
    shared by any number of concurrent request handlers.
    """

    def __init__(
        self,
        *,
        secret_key: str | bytes,
        ttl_seconds: int,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize the authority.

        Args:
            secret_key: Signing secret. Must be non-empty.
            ttl_seconds: Token lifetime. Zero or negative values are accepted
                and produce tokens that expire immediately.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If secret_key is empty.
        """
        if not secret_key:
            raise ValueError("secret_key must be non-empty")

        self._secret = secret_key.encode("utf-8") if isinstance(secret_key, str) else secret_key
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def _sign(self, payload_b64: str) -> str:
        return hmac.new(self._secret, payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()

    def mint(self, identity: str) -> str:
        """Mint a signed token for ``identity``.

        The identity is not validated here; callers reject empty or malformed
        identities before minting.

        Args:
            identity: Subject the token represents (e.g. a user id).

        Returns:
            Serialized token string ``<payload>.<signature>``.
        """
        issued_at = unix_seconds(self._clock)
        claims = TokenClaims(
            user_id=identity,
            issued_at=issued_at,
            expires_at=issued_at + self._ttl_seconds,
        )
        payload_b64 = _encode_payload(claims)
        return f"{payload_b64}{_SEPARATOR}{self._sign(payload_b64)}"

    def decode(self, token: str) -> TokenClaims:
        """Verify ``token`` and return its claims.

        Args:
            token: Serialized token as produced by ``mint``.

        Returns:
            TokenClaims for a correctly signed, unexpired token.

        Raises:
            InvalidTokenError: For any structural, signature or expiry failure.
        """
        parts = token.split(_SEPARATOR)
        if len(parts) != 2:
            raise InvalidTokenError()

        payload_b64, signature = parts
        try:
            expected = self._sign(payload_b64)
            signature_ok = hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
        except UnicodeError as exc:
            raise InvalidTokenError() from exc
        if not signature_ok:
            raise InvalidTokenError()

        payload = _decode_payload(payload_b64)
        user_id = payload.get("user_id")
        expires_at = payload.get("expires_at")
        issued_at = payload.get("issued_at", expires_at)

        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError()
        if not _is_strict_int(expires_at) or not _is_strict_int(issued_at):
            raise InvalidTokenError()
        if expires_at < unix_seconds(self._clock):
            raise InvalidTokenError()

        return TokenClaims(user_id=user_id, issued_at=issued_at, expires_at=expires_at)

    def verify(self, token: str) -> str:
        """Verify ``token`` and return the identity it carries.

        Raises:
            InvalidTokenError: If the token is malformed, forged or expired.
        """
        return self.decode(token).user_id
