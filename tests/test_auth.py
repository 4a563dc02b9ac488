"""
Tests for bearer-token authentication on profile routes.
"""

from httpx import AsyncClient
from jose import jwt

from profile_api.auth.jwt import create_identity_token, decode_token
from profile_api.config import settings


class TestDecodeToken:
    def test_round_trips_subject_and_email(self):
        token = create_identity_token("uid-1", "one@example.com")
        payload = decode_token(token)
        assert payload["sub"] == "uid-1"
        assert payload["email"] == "one@example.com"

    def test_rejects_expired_token(self):
        token = create_identity_token("uid-1", expires_minutes=-5)
        assert decode_token(token) is None

    def test_rejects_foreign_signature(self):
        token = jwt.encode({"sub": "uid-1"}, "some-other-secret", algorithm="HS256")
        assert decode_token(token) is None


class TestProfileAuth:
    """Profile routes require a valid bearer token."""

    async def test_missing_header_returns_401(self, async_client: AsyncClient):
        response = await async_client.get("/api/profile")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_wrong_scheme_returns_401(self, async_client: AsyncClient):
        token = create_identity_token("uid-1")
        response = await async_client.get(
            "/api/profile", headers={"Authorization": f"Token {token}"}
        )
        assert response.status_code == 401

    async def test_expired_token_returns_401(self, async_client: AsyncClient):
        token = create_identity_token("uid-1", expires_minutes=-1)
        response = await async_client.get(
            "/api/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired token"

    async def test_token_without_subject_returns_401(self, async_client: AsyncClient):
        token = jwt.encode({"email": "x@example.com"}, settings.jwt_secret, algorithm="HS256")
        response = await async_client.get(
            "/api/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_uid_claim_is_accepted(self, async_client: AsyncClient):
        token = jwt.encode(
            {"uid": "uid-claim", "email": "claim@example.com"},
            settings.jwt_secret,
            algorithm="HS256",
        )
        response = await async_client.get(
            "/api/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json()["id"] == "uid-claim"
