"""Unit tests for JWT identity-token verification."""

from __future__ import annotations

import time

import jwt
import pytest

from colater_mcp.config import AuthConfig
from colater_mcp.errors import CredentialNotFoundError
from colater_mcp.services.auth import JWTIdentityVerifier

SECRET = "test-secret-with-enough-length-for-hs256"


def _token(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def verifier():
    return JWTIdentityVerifier(
        AuthConfig(jwt_secret=SECRET, algorithms=["HS256"], audience="colater")
    )


class TestJWTIdentityVerifier:
    @pytest.mark.asyncio
    async def test_returns_subject(self, verifier):
        token = _token({"sub": "user-1", "aud": "colater", "exp": int(time.time()) + 60})
        assert await verifier.verify(token) == "user-1"

    @pytest.mark.asyncio
    async def test_falls_back_to_user_id_claim(self, verifier):
        token = _token({"user_id": "user-2", "aud": "colater", "exp": int(time.time()) + 60})
        assert await verifier.verify(token) == "user-2"

    @pytest.mark.asyncio
    async def test_expired(self, verifier):
        token = _token({"sub": "user-1", "aud": "colater", "exp": int(time.time()) - 60})
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_wrong_audience(self, verifier):
        token = _token({"sub": "user-1", "aud": "someone-else"})
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_wrong_signature(self, verifier):
        token = _token({"sub": "user-1", "aud": "colater"}, secret="another-secret-of-decent-length!!")
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_garbage(self, verifier):
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify("not-a-jwt")

    @pytest.mark.asyncio
    async def test_no_user_claim(self, verifier):
        token = _token({"aud": "colater"})
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_unconfigured_rejects_everything(self):
        verifier = JWTIdentityVerifier(AuthConfig())
        assert verifier.configured is False
        with pytest.raises(CredentialNotFoundError):
            await verifier.verify(_token({"sub": "user-1"}))
