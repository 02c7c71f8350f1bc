"""Integration tests for the /auth and /notifications routes.

The app is assembled the way create_app() does it, except the lifespan
injects a CredentialService built over mongomock and recording providers.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import register_routers
from errors import register_error_handlers
from repositories.indexes import ONE_TIME_CODES, PUSH_TOKENS, RESET_TOKENS, USERS
from shared.crypto import verify_secret


@pytest.fixture
def client(credential_service):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.credential_service = credential_service
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    register_routers(app)
    with TestClient(app) as c:
        yield c


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _login(client, email="tech@example.com", password="s3cret-pass") -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


# ── login / refresh / profile ─────────────────────────────────────────────────


class TestLogin:
    def test_token_pair_shape(self, client, seed_user):
        seed_user(password="s3cret-pass")
        body = _login(client)
        assert set(body) == {"accessToken", "refreshToken", "tokenType", "expiresIn"}
        assert body["tokenType"] == "Bearer"
        assert body["expiresIn"] == 3600

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "tech@example.com", "password": "nope"},
            {"email": "ghost@example.com", "password": "s3cret-pass"},
        ],
        ids=["wrong_password", "unknown_user"],
    )
    def test_failures_look_identical(self, client, seed_user, payload):
        seed_user(password="s3cret-pass")
        resp = client.post("/auth/login", json=payload)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid email or password", "code": "authentication_error"}

    def test_missing_field_is_400(self, client):
        resp = client.post("/auth/login", json={"email": "tech@example.com"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_refresh(self, client, seed_user):
        seed_user(password="s3cret-pass")
        pair = _login(client)
        resp = client.post("/auth/refresh-token", json={"refreshToken": pair["refreshToken"]})
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"accessToken", "tokenType", "expiresIn"}
        assert client.get("/auth/profile", headers=_bearer(body["accessToken"])).status_code == 200

    def test_refresh_with_access_token_rejected(self, client, seed_user):
        seed_user(password="s3cret-pass")
        pair = _login(client)
        resp = client.post("/auth/refresh-token", json={"refreshToken": pair["accessToken"]})
        assert resp.status_code == 401

    def test_profile(self, client, seed_user):
        user_id = seed_user(
            password="s3cret-pass",
            designation="Shift Lead",
            permission_overrides={"allow": ["work_orders.close"], "deny": []},
        )
        pair = _login(client)
        resp = client.get("/auth/profile", headers=_bearer(pair["accessToken"]))
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == str(user_id)
        assert body["role"] == "TECHNICIAN"
        assert body["designation"] == "Shift Lead"
        assert body["permissionOverrides"] == {"allow": ["work_orders.close"], "deny": []}
        assert "password_hash" not in resp.text and "pinHash" not in resp.text

    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Token abc"}, {"Authorization": "Bearer not-a-jwt"}],
        ids=["missing", "wrong_scheme", "garbage_token"],
    )
    def test_profile_requires_bearer(self, client, headers):
        resp = client.get("/auth/profile", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["code"] == "authentication_error"

    def test_refresh_token_not_accepted_as_bearer(self, client, seed_user):
        seed_user(password="s3cret-pass")
        pair = _login(client)
        assert client.get("/auth/profile", headers=_bearer(pair["refreshToken"])).status_code == 401


# ── OTP endpoints ─────────────────────────────────────────────────────────────


class TestOtpRoutes:
    def test_request_otp_always_succeeds(self, client, seed_user, mongo_db, sms_provider):
        seed_user()
        for contact in ("9876543210", "5550009999"):
            resp = client.post("/auth/request-otp", json={"contact": contact, "type": "LOGIN"})
            assert resp.status_code == 200
            assert resp.json() == {"success": True}
        assert mongo_db[ONE_TIME_CODES].count_documents({}) == 1
        assert len(sms_provider.sent) == 1

    def test_verify_login_returns_tokens(self, client, seed_user, sms_provider):
        seed_user()
        client.post("/auth/request-otp", json={"contact": "9876543210"})
        code = sms_provider.sent[-1].code
        resp = client.post("/auth/verify-otp", json={"contact": "9876543210", "type": "LOGIN", "code": code})
        assert resp.status_code == 200
        assert "accessToken" in resp.json() and "refreshToken" in resp.json()

        again = client.post("/auth/verify-otp", json={"contact": "9876543210", "code": code})
        assert again.status_code == 400
        assert again.json() == {"error": "Invalid or expired code", "code": "invalid_or_expired_code"}

    def test_verify_wrong_code(self, client, seed_user, sms_provider):
        seed_user()
        client.post("/auth/request-otp", json={"contact": "9876543210"})
        code = sms_provider.sent[-1].code
        resp = client.post("/auth/verify-otp", json={"contact": "9876543210", "code": _wrong(code)})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_code"

    def test_verify_pin_purpose_returns_success(self, client, seed_user, sms_provider):
        seed_user()
        client.post("/auth/request-otp", json={"contact": "9876543210", "type": "PIN"})
        code = sms_provider.sent[-1].code
        resp = client.post("/auth/verify-otp", json={"contact": "9876543210", "type": "PIN", "code": code})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    def test_has_pin(self, client, seed_user):
        seed_user(pin="4821")
        assert client.get("/auth/has-pin", params={"contact": "tech@example.com"}).json() == {"hasPin": True}
        assert client.get("/auth/has-pin", params={"contact": "ghost@example.com"}).json() == {"hasPin": False}
        assert client.get("/auth/has-pin").status_code == 400

    def test_login_pin(self, client, seed_user):
        seed_user(pin="4821")
        ok = client.post("/auth/login-pin", json={"contact": "9876543210", "pin": "4821"})
        assert ok.status_code == 200
        bad = client.post("/auth/login-pin", json={"contact": "9876543210", "pin": "0000"})
        assert bad.status_code == 401
        assert bad.json() == {"error": "Invalid credentials", "code": "authentication_error"}


# ── PIN / reset endpoints ─────────────────────────────────────────────────────


class TestCredentialRoutes:
    def test_set_pin(self, client, seed_user, mongo_db):
        user_id = seed_user(password="s3cret-pass")
        pair = _login(client)
        resp = client.post("/auth/set-pin", json={"newPin": "2468"}, headers=_bearer(pair["accessToken"]))
        assert resp.status_code == 200
        assert verify_secret("2468", mongo_db[USERS].find_one({"_id": user_id})["pin_hash"])

    def test_set_pin_validation_does_not_echo(self, client, seed_user):
        seed_user(password="s3cret-pass")
        pair = _login(client)
        resp = client.post("/auth/set-pin", json={"newPin": "12ab"}, headers=_bearer(pair["accessToken"]))
        assert resp.status_code == 400
        assert "12ab" not in resp.text

    def test_set_pin_requires_bearer(self, client):
        assert client.post("/auth/set-pin", json={"newPin": "2468"}).status_code == 401

    def test_password_reset_via_link(self, client, seed_user, email_provider, mongo_db):
        seed_user(password="s3cret-pass")
        for email in ("tech@example.com", "ghost@example.com"):
            resp = client.post("/auth/request-password-reset", json={"email": email})
            assert resp.json() == {"success": True}
        assert mongo_db[RESET_TOKENS].count_documents({}) == 1

        token = email_provider.sent[-1].link.split("token=", 1)[1]
        resp = client.post("/auth/reset-password", json={"token": token, "newPassword": "n3w-password"})
        assert resp.status_code == 200
        _login(client, password="n3w-password")

        reused = client.post("/auth/reset-password", json={"token": token, "newPassword": "other-password"})
        assert reused.status_code == 400
        assert reused.json()["code"] == "invalid_or_expired_token"

    def test_pin_reset_via_link(self, client, seed_user, email_provider):
        seed_user(pin="1111")
        client.post("/auth/request-pin-reset", json={"email": "tech@example.com"})
        token = email_provider.sent[-1].link.split("token=", 1)[1]
        assert client.post("/auth/reset-pin", json={"token": token, "newPin": "2222"}).status_code == 200
        assert client.post("/auth/login-pin", json={"contact": "tech@example.com", "pin": "2222"}).status_code == 200

    def test_short_new_password_rejected(self, client):
        resp = client.post("/auth/reset-password", json={"token": "t", "newPassword": "short"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "newPassword"

    def test_reset_by_otp(self, client, seed_user, sms_provider):
        seed_user(password="s3cret-pass", pin="1111")
        client.post("/auth/request-otp", json={"contact": "9876543210", "type": "PASSWORD"})
        code = sms_provider.sent[-1].code
        resp = client.post(
            "/auth/reset-password-otp",
            json={"contact": "9876543210", "code": code, "newPassword": "n3w-password"},
        )
        assert resp.status_code == 200
        _login(client, password="n3w-password")

        client.post("/auth/request-otp", json={"contact": "9876543210", "type": "PIN"})
        code = sms_provider.sent[-1].code
        resp = client.post("/auth/reset-pin-otp", json={"contact": "9876543210", "code": code, "newPin": "2222"})
        assert resp.status_code == 200
        assert client.post("/auth/login-pin", json={"contact": "9876543210", "pin": "2222"}).status_code == 200


# ── notifications ─────────────────────────────────────────────────────────────


class TestPushTokenRoutes:
    def test_register_and_unregister(self, client, seed_user, mongo_db):
        user_id = seed_user(password="s3cret-pass")
        headers = _bearer(_login(client)["accessToken"])
        resp = client.post(
            "/notifications/register-token",
            json={"token": "ExponentPushToken[abc]", "platform": "android"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert mongo_db[PUSH_TOKENS].find_one({"token": "ExponentPushToken[abc]"})["user_id"] == user_id

        resp = client.post(
            "/notifications/unregister-token",
            json={"token": "ExponentPushToken[abc]"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert mongo_db[PUSH_TOKENS].count_documents({}) == 0

    def test_register_requires_bearer(self, client):
        resp = client.post("/notifications/register-token", json={"token": "t"})
        assert resp.status_code == 401
