"""
User document model.

Maps to the `users` MongoDB collection. Users are provisioned elsewhere; the
credential service only reads them and overwrites password_hash / pin_hash.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from schemas.models.base import MongoBaseModel

DEFAULT_ROLE = "OPERATOR"


class PermissionOverrides(BaseModel):
    """Per-user grants and revocations layered over the role's permissions."""

    allow: list[str] = Field(default_factory=list)
    deny: list[str] = Field(default_factory=list)


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    password_hash: Optional[str] = None
    pin_hash: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    avatar_url: Optional[str] = None
    permission_overrides: PermissionOverrides = Field(default_factory=PermissionOverrides)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_role(self) -> str:
        return self.role or DEFAULT_ROLE

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash)
