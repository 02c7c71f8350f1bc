"""
Request DTOs for push-token endpoints.

RegisterPushTokenRequest   - POST /notifications/register-token
UnregisterPushTokenRequest - POST /notifications/unregister-token
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterPushTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
    platform: Optional[str] = None


class UnregisterPushTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
