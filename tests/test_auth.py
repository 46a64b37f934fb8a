"""Unit tests for bearer token authentication."""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi import HTTPException

from tokengate.core.auth import Identity, authenticate, extract_bearer_token, require_identity
from tokengate.core.errors import AuthenticationAppError, InvalidTokenError
from tokengate.services.token_authority import TokenAuthority


@pytest.fixture
def authority(clock: Mock) -> TokenAuthority:
    return TokenAuthority(secret_key="test-secret", ttl_seconds=60, clock=clock)


def _request_for(authority: TokenAuthority) -> SimpleNamespace:
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(token_authority=authority)))


class TestExtractBearerToken:
    """Test Authorization header parsing."""

    def test_extracts_token(self) -> None:
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    def test_scheme_is_case_insensitive(self) -> None:
        assert extract_bearer_token("bearer abc.def") == "abc.def"
        assert extract_bearer_token("BEARER abc.def") == "abc.def"

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        assert extract_bearer_token("  Bearer   abc.def  ") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Basic dXNlcjpwYXNz", "abc.def"])
    def test_rejects_missing_or_foreign_scheme(self, header) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            extract_bearer_token(header)

        assert exc_info.value.code == "missing_bearer_token"


class TestAuthenticate:
    """Test header-to-identity resolution."""

    def test_valid_token_yields_identity(self, authority: TokenAuthority) -> None:
        token = authority.mint("alice")

        assert authenticate(authority, f"Bearer {token}") == Identity(user_id="alice")

    def test_invalid_token_raises(self, authority: TokenAuthority) -> None:
        with pytest.raises(InvalidTokenError):
            authenticate(authority, "Bearer not-a-token")

    def test_expired_token_raises(self, authority: TokenAuthority, clock: Mock) -> None:
        token = authority.mint("alice")
        clock.return_value += 61

        with pytest.raises(InvalidTokenError):
            authenticate(authority, f"Bearer {token}")

    def test_identity_is_immutable(self) -> None:
        identity = Identity(user_id="alice")

        with pytest.raises(AttributeError):
            identity.user_id = "mallory"  # type: ignore[misc]


class TestRequireIdentityDependency:
    """Test the FastAPI dependency wrapper."""

    @pytest.mark.asyncio
    async def test_returns_identity(self, authority: TokenAuthority) -> None:
        token = authority.mint("alice")

        identity = await require_identity(_request_for(authority), authorization=f"Bearer {token}")

        assert identity.user_id == "alice"

    @pytest.mark.asyncio
    async def test_missing_header_is_401(self, authority: TokenAuthority) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await require_identity(_request_for(authority), authorization=None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}
        assert "Missing bearer token" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, authority: TokenAuthority) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await require_identity(_request_for(authority), authorization="Bearer a.b.c")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid or expired token"
