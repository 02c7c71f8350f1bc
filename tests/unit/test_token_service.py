"""Unit tests for TokenService (JWT issue / verify / refresh)."""

from datetime import timedelta
from unittest.mock import AsyncMock

import jwt
import pytest
from bson import ObjectId

from config import JWTSettings
from errors import AuthenticationError
from schemas.models.user import UserDoc
from services.token_service import TokenService
from shared.datetime_utils import utcnow

SECRET = "unit-test-secret-0123456789abcdef0123456789"


def _make(user=None, clock=utcnow, **settings):
    repo = AsyncMock()
    repo.find_by_id.return_value = user
    service = TokenService(JWTSettings(jwt_secret=SECRET, **settings), repo, clock=clock)
    return service, repo


class TestIssue:
    def test_access_claims(self):
        service, _ = _make()
        token = service.issue_access("u1", "tech@example.com", "TECHNICIAN")
        claims = service.verify_access(token)
        assert claims["sub"] == "u1"
        assert claims["email"] == "tech@example.com"
        assert claims["role"] == "TECHNICIAN"
        assert claims["iss"] == "maintenance-app"
        assert claims["aud"] == "maintenance-app.api"
        assert claims["exp"] - claims["iat"] == 3600
        assert "type" not in claims

    def test_access_defaults_role_and_omits_email(self):
        service, _ = _make()
        claims = service.verify_access(service.issue_access("u1", None, None))
        assert claims["role"] == "OPERATOR"
        assert "email" not in claims

    def test_refresh_claims(self):
        service, _ = _make()
        claims = service.verify_refresh(service.issue_refresh("u1"))
        assert claims["type"] == "refresh"
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600
        assert "role" not in claims

    def test_missing_secret_rejected(self):
        with pytest.raises(RuntimeError):
            TokenService(JWTSettings(jwt_secret=""), AsyncMock())


class TestVerify:
    def test_refresh_token_not_accepted_as_access(self):
        service, _ = _make()
        with pytest.raises(AuthenticationError):
            service.verify_access(service.issue_refresh("u1"))

    def test_access_token_not_accepted_as_refresh(self):
        service, _ = _make()
        with pytest.raises(AuthenticationError):
            service.verify_refresh(service.issue_access("u1", None, None))

    def test_wrong_secret(self):
        service, _ = _make()
        forged = jwt.encode(
            {"sub": "u1", "iss": "maintenance-app", "aud": "maintenance-app.api", "iat": 0, "exp": 2**31},
            "other-secret-0123456789abcdef0123456789",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            service.verify_access(forged)

    def test_wrong_audience(self):
        issuer, _ = _make(jwt_audience="someone-else")
        service, _ = _make()
        with pytest.raises(AuthenticationError):
            service.verify_access(issuer.issue_access("u1", None, None))

    def test_garbage(self):
        service, _ = _make()
        with pytest.raises(AuthenticationError):
            service.verify_access("not.a.jwt")

    def test_expired_by_clock(self):
        service, _ = _make()
        token = service.issue_access("u1", None, None)
        later, _ = _make(clock=lambda: utcnow() + timedelta(hours=2))
        with pytest.raises(AuthenticationError, match="expired"):
            later.verify_access(token)

    def test_refresh_expires_after_seven_days(self):
        service, _ = _make()
        token = service.issue_refresh("u1")
        later, _ = _make(clock=lambda: utcnow() + timedelta(days=7, seconds=1))
        with pytest.raises(AuthenticationError):
            later.verify_refresh(token)


class TestRefresh:
    async def test_refresh_rereads_user(self):
        user_id = ObjectId()
        user = UserDoc(_id=user_id, email="tech@example.com", role="SUPERVISOR")
        service, repo = _make(user=user)
        access = await service.refresh(service.issue_refresh(str(user_id)))
        claims = service.verify_access(access)
        assert claims["sub"] == str(user_id)
        assert claims["role"] == "SUPERVISOR"
        repo.find_by_id.assert_awaited_once_with(str(user_id))

    async def test_refresh_token_stays_valid(self):
        user_id = ObjectId()
        service, _ = _make(user=UserDoc(_id=user_id))
        refresh = service.issue_refresh(str(user_id))
        await service.refresh(refresh)
        assert await service.refresh(refresh)

    async def test_deleted_user(self):
        service, _ = _make(user=None)
        with pytest.raises(AuthenticationError):
            await service.refresh(service.issue_refresh(str(ObjectId())))

    async def test_access_token_rejected(self):
        service, repo = _make(user=UserDoc(_id=ObjectId()))
        with pytest.raises(AuthenticationError):
            await service.refresh(service.issue_access("u1", None, None))
        repo.find_by_id.assert_not_awaited()
