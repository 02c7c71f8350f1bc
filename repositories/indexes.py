"""
Collection names and index setup, run once from the app lifespan.
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

USERS = "users"
ONE_TIME_CODES = "one-time-codes"
RESET_TOKENS = "reset-tokens"
PUSH_TOKENS = "push-tokens"


async def ensure_indexes(db: AsyncDatabase) -> None:
    await db[USERS].create_index([("email", ASCENDING)])
    await db[USERS].create_index([("phone", ASCENDING)])
    await db[ONE_TIME_CODES].create_index(
        [("target", ASCENDING), ("purpose", ASCENDING), ("created_at", DESCENDING)]
    )
    await db[RESET_TOKENS].create_index([("token_hash", ASCENDING)], unique=True)
    await db[PUSH_TOKENS].create_index([("token", ASCENDING)], unique=True)
    await db[PUSH_TOKENS].create_index([("user_id", ASCENDING)])
