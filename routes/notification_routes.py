"""
Push-token registration for signed-in devices.

POST /notifications/register-token   - bearer; bind a device push token to the caller
POST /notifications/unregister-token - bearer; drop the caller's binding for a token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import CurrentUser, get_credential_service, get_current_user
from schemas.dto.requests.notifications import (
    RegisterPushTokenRequest,
    UnregisterPushTokenRequest,
)
from schemas.dto.responses.common import ErrorResponse, SuccessResponse
from services.credential_service import CredentialService

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    responses={401: {"model": ErrorResponse}},
)


@router.post("/register-token", response_model=SuccessResponse)
async def register_token(
    body: RegisterPushTokenRequest,
    current: CurrentUser = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.register_push_token(current.user_id, body.token, body.platform)
    return SuccessResponse()


@router.post("/unregister-token", response_model=SuccessResponse)
async def unregister_token(
    body: UnregisterPushTokenRequest,
    current: CurrentUser = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
) -> SuccessResponse:
    await service.unregister_push_token(current.user_id, body.token)
    return SuccessResponse()
