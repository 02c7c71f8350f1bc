"""
Reset token document model.

Maps to the `reset-tokens` MongoDB collection. token_hash is SHA-256 of the
256-bit link token mailed to the user; a token is redeemable once.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class ResetPurpose(str, Enum):
    PASSWORD = "PASSWORD"
    PIN = "PIN"


class ResetTokenDoc(MongoBaseModel):
    """Document model for the `reset-tokens` collection."""

    user_id: PyObjectId
    purpose: ResetPurpose
    token_hash: str
    created_at: datetime
    expires_at: datetime
    consumed_at: Optional[datetime] = None
