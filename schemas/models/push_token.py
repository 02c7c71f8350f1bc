"""
Push token document model.

Maps to the `push-tokens` MongoDB collection; one row per device token.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class PushTokenDoc(MongoBaseModel):
    token: str
    user_id: PyObjectId
    platform: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
