"""Async repository for the `push-tokens` collection."""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection

from shared.datetime_utils import utcnow


class PushTokenRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def upsert(self, token: str, user_id: ObjectId, platform: Optional[str]) -> None:
        """Bind *token* to *user_id*; a token re-registered by another user moves."""
        now = utcnow()
        await self._col.update_one(
            {"token": token},
            {
                "$set": {"user_id": user_id, "platform": platform, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    async def delete(self, token: str, user_id: ObjectId) -> bool:
        result = await self._col.delete_one({"token": token, "user_id": user_id})
        return result.deleted_count == 1
