"""
Response DTOs for authentication endpoints.

TokenPairResponse     - login, login-pin, verify-otp (LOGIN)
AccessTokenResponse   - POST /auth/refresh-token
HasPinResponse        - GET /auth/has-pin
PermissionOverridesInfo / UserProfileResponse - GET /auth/profile

Fields serialize with their camelCase aliases (FastAPI's default
response_model_by_alias).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

TOKEN_TYPE = "Bearer"


class AccessTokenResponse(BaseModel):
    """Response body for POST /auth/refresh-token (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    token_type: str = Field(default=TOKEN_TYPE, alias="tokenType")
    expires_in: int = Field(alias="expiresIn")


class TokenPairResponse(AccessTokenResponse):
    """Access + refresh token pair returned by every successful login path."""

    refresh_token: str = Field(alias="refreshToken")


class HasPinResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_pin: bool = Field(alias="hasPin")


class PermissionOverridesInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    allow: list[str] = Field(default_factory=list)
    deny: list[str] = Field(default_factory=list)


class UserProfileResponse(BaseModel):
    """Identity view returned by GET /auth/profile."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    phone: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    permission_overrides: PermissionOverridesInfo = Field(
        default_factory=PermissionOverridesInfo, alias="permissionOverrides"
    )
