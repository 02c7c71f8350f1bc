"""
One-time code document model.

Maps to the `one-time-codes` MongoDB collection.

Used for LOGIN codes and for the OTP variants of password and PIN resets.
code_hash stores SHA-256(code); the plain code is never stored.
consumed_at is None until the code is used. attempts counts failed guesses.
Rows are never deleted; the newest unconsumed, unexpired row for a
(target, purpose) pair is the current one.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId
from shared.contacts import Channel


class CodePurpose(str, Enum):
    LOGIN = "LOGIN"
    PASSWORD = "PASSWORD"
    PIN = "PIN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CodePurpose":
        """Unknown or missing purposes fall back to LOGIN."""
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.LOGIN


class OneTimeCodeDoc(MongoBaseModel):
    """Document model for the `one-time-codes` collection."""

    user_id: Optional[PyObjectId] = None
    target: str
    channel: Channel
    purpose: CodePurpose
    code_hash: str
    created_at: datetime
    expires_at: datetime
    consumed_at: Optional[datetime] = None
    attempts: int = Field(default=0, ge=0)
