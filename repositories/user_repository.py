"""
Async repository for the `users` collection.

Users are provisioned by another part of the system; this repository only
looks them up by contact or id and overwrites their credential hashes.
"""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.user import UserDoc
from shared.contacts import is_email, normalize_contact, phone_match_query
from shared.datetime_utils import utcnow


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_by_id(self, user_id: ObjectId | str) -> Optional[UserDoc]:
        if isinstance(user_id, str):
            if not ObjectId.is_valid(user_id):
                return None
            user_id = ObjectId(user_id)
        doc = await self._col.find_one({"_id": user_id})
        return UserDoc.from_mongo(doc)

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": normalize_contact(email)})
        return UserDoc.from_mongo(doc)

    async def find_by_contact(self, contact: str) -> Optional[UserDoc]:
        """Resolve an e-mail address or phone number to a user."""
        contact = normalize_contact(contact)
        if not contact:
            return None
        if is_email(contact):
            return await self.find_by_email(contact)
        doc = await self._col.find_one(phone_match_query(contact))
        return UserDoc.from_mongo(doc)

    async def update_credentials(
        self,
        user_id: ObjectId,
        *,
        password_hash: Optional[str] = None,
        pin_hash: Optional[str] = None,
    ) -> bool:
        """Overwrite the given credential hashes. Returns False if the user is gone."""
        updates: dict = {"updated_at": utcnow()}
        if password_hash is not None:
            updates["password_hash"] = password_hash
        if pin_hash is not None:
            updates["pin_hash"] = pin_hash
        result = await self._col.update_one({"_id": user_id}, {"$set": updates})
        return result.matched_count == 1
