"""
ResetTokenService: single-use link tokens for password and PIN resets.

The plaintext token only ever exists in the reset link; the database holds
its SHA-256 digest.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from bson import ObjectId

from config import ResetTokenSettings
from repositories.reset_token_repository import ResetTokenRepository
from schemas.models.reset_token import ResetPurpose, ResetTokenDoc
from shared.crypto import hash_token
from shared.datetime_utils import utcnow
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

_RESET_PATHS = {
    ResetPurpose.PASSWORD: "/login/reset-password",
    ResetPurpose.PIN: "/login/reset-pin",
}


class ResetTokenService:
    def __init__(
        self,
        token_repo: ResetTokenRepository,
        settings: ResetTokenSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._tokens = token_repo
        self._settings = settings
        self._clock = clock

    async def issue(self, user_id: ObjectId, purpose: ResetPurpose) -> str:
        """Create a token for *user_id* and return its plaintext."""
        token = generate_secure_token(self._settings.reset_token_bytes)
        now = self._clock()
        await self._tokens.insert(
            ResetTokenDoc(
                user_id=user_id,
                purpose=purpose,
                token_hash=hash_token(token),
                created_at=now,
                expires_at=now + timedelta(seconds=self._settings.reset_token_ttl_seconds),
            )
        )
        log.info("reset_token_issued", user_id=str(user_id), purpose=purpose.value)
        return token

    async def redeem(self, token: str, purpose: ResetPurpose) -> Optional[ObjectId]:
        """Consume *token*; returns the owner's id, or None if it is not redeemable."""
        doc = await self._tokens.redeem(hash_token(token), purpose, self._clock())
        if doc is None:
            log.info("reset_token_rejected", purpose=purpose.value)
            return None
        log.info("reset_token_redeemed", user_id=str(doc.user_id), purpose=purpose.value)
        return doc.user_id

    def build_link(self, token: str, purpose: ResetPurpose) -> str:
        base = self._settings.frontend_url.rstrip("/")
        return f"{base}{_RESET_PATHS[purpose]}?token={token}"
