"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
stored on app.state; these providers just hand them out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from errors import AuthenticationError
from services.credential_service import CredentialService

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Identity taken from a verified access token."""

    user_id: ObjectId
    email: Optional[str]
    role: str


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credential_service


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    service: CredentialService = Depends(get_credential_service),
) -> CurrentUser:
    """Require ``Authorization: Bearer <access token>``.

    Missing or malformed headers, bad signatures, expired tokens and refresh
    tokens are all rejected with 401.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing or invalid authorization header")

    claims = service.authenticate(credentials.credentials)
    sub = claims.get("sub")
    if not sub or not ObjectId.is_valid(sub):
        raise AuthenticationError("Invalid token")
    return CurrentUser(
        user_id=ObjectId(sub),
        email=claims.get("email"),
        role=claims.get("role", ""),
    )
