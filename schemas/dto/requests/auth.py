"""
Request DTOs for authentication endpoints.

LoginRequest                  - POST /auth/login
RefreshTokenRequest           - POST /auth/refresh-token
RequestOtpRequest             - POST /auth/request-otp
VerifyOtpRequest              - POST /auth/verify-otp
LoginPinRequest               - POST /auth/login-pin
SetPinRequest                 - POST /auth/set-pin
RequestResetRequest           - POST /auth/request-password-reset, /auth/request-pin-reset
ResetPasswordRequest          - POST /auth/reset-password
ResetPinRequest               - POST /auth/reset-pin
ResetPasswordOtpRequest       - POST /auth/reset-password-otp
ResetPinOtpRequest            - POST /auth/reset-pin-otp

Field names on the wire are camelCase; populate_by_name lets services and
tests build them with the snake_case names too.
"""

from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.models.one_time_code import CodePurpose

MIN_PASSWORD_LENGTH = 8
PIN_PATTERN = r"^\d{4,8}$"

NonEmpty = Annotated[str, Field(min_length=1)]
NewPassword = Annotated[str, Field(min_length=MIN_PASSWORD_LENGTH)]
NewPin = Annotated[str, Field(pattern=PIN_PATTERN)]


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: NonEmpty
    password: NonEmpty


class RefreshTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: NonEmpty = Field(alias="refreshToken")


class RequestOtpRequest(BaseModel):
    """Request body for POST /auth/request-otp.

    ``type`` is optional; missing or unknown values mean LOGIN.
    """

    model_config = ConfigDict(populate_by_name=True)

    contact: NonEmpty
    purpose: CodePurpose = Field(default=CodePurpose.LOGIN, alias="type")

    @field_validator("purpose", mode="before")
    @classmethod
    def _lenient_purpose(cls, v: Optional[str]) -> CodePurpose:
        return CodePurpose.parse(v)


class VerifyOtpRequest(RequestOtpRequest):
    """Request body for POST /auth/verify-otp."""

    code: NonEmpty


class LoginPinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contact: NonEmpty
    pin: NonEmpty


class SetPinRequest(BaseModel):
    """Request body for POST /auth/set-pin (bearer-protected)."""

    model_config = ConfigDict(populate_by_name=True)

    new_pin: NewPin = Field(alias="newPin")


class RequestResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: NonEmpty


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: NonEmpty
    new_password: NewPassword = Field(alias="newPassword")


class ResetPinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: NonEmpty
    new_pin: NewPin = Field(alias="newPin")


class ResetPasswordOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contact: NonEmpty
    code: NonEmpty
    new_password: NewPassword = Field(alias="newPassword")


class ResetPinOtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contact: NonEmpty
    code: NonEmpty
    new_pin: NewPin = Field(alias="newPin")
