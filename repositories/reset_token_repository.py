"""Async repository for the `reset-tokens` collection."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.reset_token import ResetPurpose, ResetTokenDoc


class ResetTokenRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def insert(self, doc: ResetTokenDoc) -> ObjectId:
        result = await self._col.insert_one(doc.to_mongo())
        return result.inserted_id

    async def redeem(
        self, token_hash: str, purpose: ResetPurpose, now: datetime
    ) -> Optional[ResetTokenDoc]:
        """Atomically consume a live token; None if missing, used or expired."""
        doc = await self._col.find_one_and_update(
            {
                "token_hash": token_hash,
                "purpose": purpose.value,
                "consumed_at": None,
                "expires_at": {"$gt": now},
            },
            {"$set": {"consumed_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return ResetTokenDoc.from_mongo(doc)
