"""
Async repository for the `one-time-codes` collection.

Consumption is a single conditional update on ``consumed_at: null`` so two
concurrent verifications of the same code cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.one_time_code import CodePurpose, OneTimeCodeDoc


class OneTimeCodeRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def insert(self, doc: OneTimeCodeDoc) -> ObjectId:
        result = await self._col.insert_one(doc.to_mongo())
        return result.inserted_id

    async def find_current(
        self, target: str, purpose: CodePurpose, now: datetime
    ) -> Optional[OneTimeCodeDoc]:
        """Most recently created unconsumed, unexpired code for (target, purpose)."""
        doc = await self._col.find_one(
            {
                "target": target,
                "purpose": purpose.value,
                "consumed_at": None,
                "expires_at": {"$gt": now},
            },
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
        )
        return OneTimeCodeDoc.from_mongo(doc)

    async def increment_attempts(self, code_id: ObjectId) -> None:
        await self._col.update_one({"_id": code_id}, {"$inc": {"attempts": 1}})

    async def consume(self, code_id: ObjectId, now: datetime) -> bool:
        """Mark a code consumed. False when another request consumed it first."""
        result = await self._col.update_one(
            {"_id": code_id, "consumed_at": None},
            {"$set": {"consumed_at": now}},
        )
        return result.modified_count == 1

    async def count_recent(
        self, target: str, purpose: CodePurpose, now: datetime, window: timedelta
    ) -> int:
        return await self._col.count_documents(
            {
                "target": target,
                "purpose": purpose.value,
                "created_at": {"$gte": now - window},
            }
        )
