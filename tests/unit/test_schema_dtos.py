"""Unit tests for request and response DTOs."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from schemas.dto.requests.auth import (
    LoginPinRequest,
    LoginRequest,
    RefreshTokenRequest,
    RequestOtpRequest,
    ResetPasswordOtpRequest,
    ResetPasswordRequest,
    ResetPinOtpRequest,
    ResetPinRequest,
    SetPinRequest,
    VerifyOtpRequest,
)
from schemas.dto.requests.notifications import RegisterPushTokenRequest
from schemas.dto.responses.auth import (
    AccessTokenResponse,
    HasPinResponse,
    TokenPairResponse,
    UserProfileResponse,
)
from schemas.models.one_time_code import CodePurpose


# ── Requests ──────────────────────────────────────────────────────────────────


class TestLoginRequest:
    def test_valid(self):
        req = LoginRequest.model_validate({"email": "a@b.co", "password": "pw"})
        assert req.email == "a@b.co"

    @pytest.mark.parametrize(
        "body",
        [{"email": "a@b.co"}, {"email": "", "password": "pw"}, {}],
        ids=["missing_password", "empty_email", "empty_body"],
    )
    def test_invalid(self, body):
        with pytest.raises(ValidationError):
            LoginRequest.model_validate(body)


class TestOtpRequests:
    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"contact": "x"}, CodePurpose.LOGIN),
            ({"contact": "x", "type": "PIN"}, CodePurpose.PIN),
            ({"contact": "x", "type": "password"}, CodePurpose.PASSWORD),
            ({"contact": "x", "type": "SIGNUP"}, CodePurpose.LOGIN),
            ({"contact": "x", "type": None}, CodePurpose.LOGIN),
        ],
        ids=["default", "pin", "lowercase_password", "unknown", "null"],
    )
    def test_purpose_from_type(self, body, expected):
        assert RequestOtpRequest.model_validate(body).purpose is expected

    def test_verify_requires_code(self):
        with pytest.raises(ValidationError):
            VerifyOtpRequest.model_validate({"contact": "x", "type": "LOGIN"})

    def test_verify_valid(self):
        req = VerifyOtpRequest.model_validate({"contact": "x", "code": "123456"})
        assert req.code == "123456"
        assert req.purpose is CodePurpose.LOGIN

    def test_contact_required(self):
        with pytest.raises(ValidationError):
            RequestOtpRequest.model_validate({"contact": ""})


class TestPinAndPasswordRules:
    @pytest.mark.parametrize(
        "pin, ok",
        [("1234", True), ("12345678", True), ("123", False), ("123456789", False), ("12a4", False)],
        ids=["four", "eight", "too_short", "too_long", "non_digit"],
    )
    def test_new_pin_pattern(self, pin, ok):
        bodies = [
            (SetPinRequest, {"newPin": pin}),
            (ResetPinRequest, {"token": "t", "newPin": pin}),
            (ResetPinOtpRequest, {"contact": "c", "code": "1", "newPin": pin}),
        ]
        for model, body in bodies:
            if ok:
                assert model.model_validate(body).new_pin == pin
            else:
                with pytest.raises(ValidationError):
                    model.model_validate(body)

    @pytest.mark.parametrize("password, ok", [("longenough", True), ("short", False)], ids=["ok", "short"])
    def test_new_password_length(self, password, ok):
        bodies = [
            (ResetPasswordRequest, {"token": "t", "newPassword": password}),
            (ResetPasswordOtpRequest, {"contact": "c", "code": "1", "newPassword": password}),
        ]
        for model, body in bodies:
            if ok:
                assert model.model_validate(body).new_password == password
            else:
                with pytest.raises(ValidationError):
                    model.model_validate(body)

    def test_login_pin_accepts_any_nonempty(self):
        assert LoginPinRequest.model_validate({"contact": "c", "pin": "0"}).pin == "0"

    def test_refresh_alias(self):
        assert RefreshTokenRequest.model_validate({"refreshToken": "r"}).refresh_token == "r"
        with pytest.raises(ValidationError):
            RefreshTokenRequest.model_validate({})

    def test_push_token_platform_optional(self):
        assert RegisterPushTokenRequest.model_validate({"token": "t"}).platform is None


# ── Responses ─────────────────────────────────────────────────────────────────


class TestResponses:
    def test_token_pair_wire_shape(self):
        resp = TokenPairResponse(access_token="a", refresh_token="r", expires_in=3600)
        assert resp.model_dump(by_alias=True) == {
            "accessToken": "a",
            "refreshToken": "r",
            "tokenType": "Bearer",
            "expiresIn": 3600,
        }

    def test_access_token_wire_shape(self):
        resp = AccessTokenResponse(access_token="a", expires_in=3600)
        assert resp.model_dump(by_alias=True) == {
            "accessToken": "a",
            "tokenType": "Bearer",
            "expiresIn": 3600,
        }

    def test_has_pin(self):
        assert HasPinResponse(has_pin=True).model_dump(by_alias=True) == {"hasPin": True}

    def test_profile_defaults(self):
        data = UserProfileResponse(id="1", role="OPERATOR").model_dump(by_alias=True)
        assert data["permissionOverrides"] == {"allow": [], "deny": []}
        assert data["avatarUrl"] is None
