"""Unit tests for the stateless token authority."""

import base64
import hashlib
import hmac
import json
from unittest.mock import Mock

import pytest

from tokengate.core.errors import AuthenticationAppError, InvalidTokenError
from tokengate.services.token_authority import TokenAuthority, TokenClaims


def _forge(secret: bytes, raw_payload: bytes) -> str:
    """Build a correctly signed token around an arbitrary payload."""
    payload_b64 = base64.b64encode(raw_payload).decode()
    signature = hmac.new(secret, payload_b64.encode(), hashlib.sha256).hexdigest()
    return f"{payload_b64}.{signature}"


@pytest.fixture
def authority(clock: Mock) -> TokenAuthority:
    return TokenAuthority(secret_key="test-secret", ttl_seconds=3600, clock=clock)


class TestMint:
    def test_token_has_payload_and_signature(self, authority: TokenAuthority) -> None:
        token = authority.mint("test-user-123")

        parts = token.split(".")
        assert len(parts) == 2
        assert all(parts)

    def test_payload_matches_wire_format(self) -> None:
        clock = Mock(return_value=1000.0)
        authority = TokenAuthority(secret_key="s", ttl_seconds=3600, clock=clock)

        payload_b64, signature = authority.mint("alice").split(".")

        raw = base64.b64decode(payload_b64)
        assert raw == b'{"user_id":"alice","expires_at":4600,"issued_at":1000}'
        expected_sig = hmac.new(b"s", payload_b64.encode(), hashlib.sha256).hexdigest()
        assert signature == expected_sig

    def test_slashes_and_non_ascii_are_escaped(self, authority: TokenAuthority) -> None:
        payload_b64 = authority.mint("team/zoë").split(".")[0]

        raw = base64.b64decode(payload_b64)
        assert b'"team\\/zo\\u00eb"' in raw
        assert authority.verify(authority.mint("team/zoë")) == "team/zoë"

    def test_fractional_clock_is_truncated(self) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=10, clock=Mock(return_value=1000.9))

        claims = authority.decode(authority.mint("alice"))

        assert claims == TokenClaims(user_id="alice", issued_at=1000, expires_at=1010)

    def test_negative_ttl_mints_without_error(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=-1, clock=clock)

        token = authority.mint("alice")

        payload = json.loads(base64.b64decode(token.split(".")[0]))
        assert payload["expires_at"] == payload["issued_at"] - 1

    def test_empty_identity_is_minted(self, authority: TokenAuthority) -> None:
        assert authority.mint("")

    @pytest.mark.parametrize("secret", ["", b""])
    def test_empty_secret_rejected(self, secret) -> None:
        with pytest.raises(ValueError):
            TokenAuthority(secret_key=secret, ttl_seconds=60)

    def test_bytes_and_str_secrets_are_equivalent(self, clock: Mock) -> None:
        from_str = TokenAuthority(secret_key="secret", ttl_seconds=60, clock=clock)
        from_bytes = TokenAuthority(secret_key=b"secret", ttl_seconds=60, clock=clock)

        assert from_str.mint("alice") == from_bytes.mint("alice")


class TestVerify:
    @pytest.mark.parametrize("identity", ["alice", "test-user-123", "42", "user with spaces"])
    def test_round_trip(self, authority: TokenAuthority, identity: str) -> None:
        assert authority.verify(authority.mint(identity)) == identity

    def test_expiry_boundaries(self) -> None:
        clock = Mock(return_value=1000.0)
        authority = TokenAuthority(secret_key="s", ttl_seconds=3600, clock=clock)
        token = authority.mint("alice")

        clock.return_value = 4599.0
        assert authority.verify(token) == "alice"

        clock.return_value = 4600.0
        assert authority.verify(token) == "alice"

        clock.return_value = 4601.0
        with pytest.raises(InvalidTokenError):
            authority.verify(token)

    def test_negative_ttl_token_is_expired(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="test-secret", ttl_seconds=-1, clock=clock)

        with pytest.raises(InvalidTokenError) as exc_info:
            authority.verify(authority.mint("test-user"))

        assert exc_info.value.message == "Invalid or expired token"

    def test_zero_ttl_expires_on_next_second(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=0, clock=clock)
        token = authority.mint("alice")

        assert authority.verify(token) == "alice"

        clock.return_value += 1
        with pytest.raises(InvalidTokenError):
            authority.verify(token)

    def test_every_signature_character_is_checked(self, authority: TokenAuthority) -> None:
        token = authority.mint("alice")
        payload_b64, signature = token.split(".")

        for index, char in enumerate(signature):
            replacement = "0" if char != "0" else "1"
            tampered = signature[:index] + replacement + signature[index + 1 :]
            with pytest.raises(InvalidTokenError):
                authority.verify(f"{payload_b64}.{tampered}")

    def test_tampered_payload_rejected(self, authority: TokenAuthority) -> None:
        payload_b64, signature = authority.mint("alice").split(".")
        other_payload = authority.mint("mallory").split(".")[0]

        with pytest.raises(InvalidTokenError):
            authority.verify(f"{other_payload}.{signature}")

    def test_other_secret_rejected(self, authority: TokenAuthority, clock: Mock) -> None:
        other = TokenAuthority(secret_key="other-secret", ttl_seconds=3600, clock=clock)

        with pytest.raises(InvalidTokenError):
            authority.verify(other.mint("alice"))

    @pytest.mark.parametrize(
        "token",
        [
            "not-a-token",
            "",
            "a.b.c",
            ".",
            "a.",
            ".b",
            "payload.é",
            "payload.abc..def",
            "abc.\ud800",
            "\ud800.abc",
            "\udcff\udcfe.deadbeef",
        ],
    )
    def test_structural_rejection(self, authority: TokenAuthority, token: str) -> None:
        with pytest.raises(InvalidTokenError):
            authority.verify(token)

    @pytest.mark.parametrize(
        "raw_payload",
        [
            b"not json",
            b"[1, 2, 3]",
            b'"alice"',
            b"{}",
            b'{"user_id": "", "expires_at": 99999, "issued_at": 1000}',
            b'{"user_id": 42, "expires_at": 99999, "issued_at": 1000}',
            b'{"user_id": "alice", "issued_at": 1000}',
            b'{"user_id": "alice", "expires_at": "99999", "issued_at": 1000}',
            b'{"user_id": "alice", "expires_at": 99999.5, "issued_at": 1000}',
            b'{"user_id": "alice", "expires_at": true, "issued_at": 1000}',
            b'{"user_id": "alice", "expires_at": 99999, "issued_at": "1000"}',
            b"\xff\xfe",
        ],
    )
    def test_signed_but_malformed_payload_rejected(self, clock: Mock, raw_payload: bytes) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=3600, clock=clock)

        with pytest.raises(InvalidTokenError):
            authority.verify(_forge(b"s", raw_payload))

    def test_signed_non_base64_payload_rejected(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=3600, clock=clock)
        payload = "%%%not-base64%%%"
        signature = hmac.new(b"s", payload.encode(), hashlib.sha256).hexdigest()

        with pytest.raises(InvalidTokenError):
            authority.verify(f"{payload}.{signature}")

    def test_issued_at_is_optional(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=3600, clock=clock)
        token = _forge(b"s", b'{"user_id":"alice","expires_at":5000}')

        assert authority.verify(token) == "alice"

    def test_empty_identity_token_fails_verification(self, authority: TokenAuthority) -> None:
        with pytest.raises(InvalidTokenError):
            authority.verify(authority.mint(""))

    def test_failures_are_indistinguishable(self, clock: Mock) -> None:
        authority = TokenAuthority(secret_key="s", ttl_seconds=-5, clock=clock)
        expired = authority.mint("alice")
        payload_b64, signature = expired.split(".")
        forged = f"{payload_b64}.{'0' * len(signature)}"

        errors = []
        for token in (expired, forged, "garbage"):
            with pytest.raises(InvalidTokenError) as exc_info:
                authority.verify(token)
            errors.append((exc_info.value.code, exc_info.value.message))

        assert len(set(errors)) == 1
        assert isinstance(exc_info.value, AuthenticationAppError)


class TestDecode:
    def test_returns_full_claims(self, authority: TokenAuthority) -> None:
        claims = authority.decode(authority.mint("alice"))

        assert claims == TokenClaims(user_id="alice", issued_at=1000, expires_at=4600)

    def test_ttl_exposed(self, authority: TokenAuthority) -> None:
        assert authority.ttl_seconds == 3600
