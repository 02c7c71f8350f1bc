"""
Credential endpoints under /auth.

POST /auth/login                    - email + password → token pair
GET  /auth/profile                  - bearer; identity + permission overrides
POST /auth/refresh-token            - refresh token → new access token
POST /auth/request-otp              - always {success: true}
POST /auth/verify-otp               - LOGIN → token pair, PASSWORD/PIN → {success}
GET  /auth/has-pin?contact=         - {hasPin}
POST /auth/login-pin                - contact + PIN → token pair
POST /auth/set-pin                  - bearer; overwrite the caller's PIN
POST /auth/request-password-reset   - always {success: true}
POST /auth/reset-password           - reset token + new password
POST /auth/request-pin-reset        - always {success: true}
POST /auth/reset-pin                - reset token + new PIN
POST /auth/reset-password-otp       - contact + PASSWORD code + new password
POST /auth/reset-pin-otp            - contact + PIN code + new PIN
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, Query

from dependencies import CurrentUser, get_credential_service, get_current_user
from errors import ValidationError
from schemas.dto.requests.auth import (
    LoginPinRequest,
    LoginRequest,
    RefreshTokenRequest,
    RequestOtpRequest,
    RequestResetRequest,
    ResetPasswordOtpRequest,
    ResetPasswordRequest,
    ResetPinOtpRequest,
    ResetPinRequest,
    SetPinRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.auth import (
    AccessTokenResponse,
    HasPinResponse,
    PermissionOverridesInfo,
    TokenPairResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ErrorResponse, SuccessResponse
from schemas.models.user import DEFAULT_ROLE
from services.credential_service import CredentialService, TokenPair

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)


def _pair_response(pair: TokenPair) -> TokenPairResponse:
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/login", response_model=TokenPairResponse)
async def login(
    body: LoginRequest,
    service: CredentialService = Depends(get_credential_service),
) -> TokenPairResponse:
    return _pair_response(await service.login(body.email, body.password))


@router.get("/profile", response_model=UserProfileResponse)
async def profile(
    current: CurrentUser = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
) -> UserProfileResponse:
    user = await service.profile(current.user_id)
    return UserProfileResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role or DEFAULT_ROLE,
        phone=user.phone,
        department=user.department,
        designation=user.designation,
        avatar_url=user.avatar_url,
        permission_overrides=PermissionOverridesInfo(
            allow=user.permission_overrides.allow,
            deny=user.permission_overrides.deny,
        ),
    )


@router.post("/refresh-token", response_model=AccessTokenResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AccessTokenResponse:
    access_token = await service.refresh_token(body.refresh_token)
    return AccessTokenResponse(
        access_token=access_token,
        expires_in=service.access_ttl_seconds,
    )


@router.post("/request-otp", response_model=SuccessResponse)
async def request_otp(
    body: RequestOtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.request_otp(body.contact, body.purpose)
    return SuccessResponse()


@router.post("/verify-otp", response_model=Union[TokenPairResponse, SuccessResponse])
async def verify_otp(
    body: VerifyOtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> Union[TokenPairResponse, SuccessResponse]:
    pair = await service.verify_otp(body.contact, body.purpose, body.code)
    if pair is None:
        return SuccessResponse()
    return _pair_response(pair)


@router.get("/has-pin", response_model=HasPinResponse)
async def has_pin(
    contact: str = Query(default=""),
    service: CredentialService = Depends(get_credential_service),
) -> HasPinResponse:
    if not contact.strip():
        raise ValidationError("contact is required", field="contact")
    return HasPinResponse(has_pin=await service.has_pin(contact))


@router.post("/login-pin", response_model=TokenPairResponse)
async def login_pin(
    body: LoginPinRequest,
    service: CredentialService = Depends(get_credential_service),
) -> TokenPairResponse:
    return _pair_response(await service.login_with_pin(body.contact, body.pin))


@router.post("/set-pin", response_model=SuccessResponse)
async def set_pin(
    body: SetPinRequest,
    current: CurrentUser = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.set_pin(current.user_id, body.new_pin)
    return SuccessResponse()


@router.post("/request-password-reset", response_model=SuccessResponse)
async def request_password_reset(
    body: RequestResetRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.request_password_reset(body.email)
    return SuccessResponse()


@router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(
    body: ResetPasswordRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.reset_password(body.token, body.new_password)
    return SuccessResponse()


@router.post("/request-pin-reset", response_model=SuccessResponse)
async def request_pin_reset(
    body: RequestResetRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.request_pin_reset(body.email)
    return SuccessResponse()


@router.post("/reset-pin", response_model=SuccessResponse)
async def reset_pin(
    body: ResetPinRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.reset_pin(body.token, body.new_pin)
    return SuccessResponse()


@router.post("/reset-password-otp", response_model=SuccessResponse)
async def reset_password_otp(
    body: ResetPasswordOtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.reset_password_otp(body.contact, body.code, body.new_password)
    return SuccessResponse()


@router.post("/reset-pin-otp", response_model=SuccessResponse)
async def reset_pin_otp(
    body: ResetPinOtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.reset_pin_otp(body.contact, body.code, body.new_pin)
    return SuccessResponse()
