"""
OtpService: issue and verify short-lived numeric codes.

Codes are keyed on the canonical contact (see ``contact_key``), so the
throttle and verification see every spelling of a phone number as one target.
Issuing never reveals whether the contact belongs to a user: unknown contacts
and throttled requests are logged and dropped, and the caller reports
success either way.

Verification outcomes:
- INVALID_OR_EXPIRED: no current code for (target, purpose), the code's
  attempt budget is spent, or another request consumed it first
- INVALID_CODE: a current code exists but the value is wrong (attempts += 1)
- SUCCESS: the code is now consumed; ``user_id`` is its owner
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from bson import ObjectId

from config import OtpSettings
from infrastructure.delivery import OtpDelivery
from repositories.one_time_code_repository import OneTimeCodeRepository
from repositories.user_repository import UserRepository
from schemas.models.one_time_code import CodePurpose, OneTimeCodeDoc
from shared.contacts import Channel, channel_for, contact_key, mask_contact
from shared.crypto import hash_token, token_hashes_match
from shared.datetime_utils import utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

THROTTLE_WINDOW = timedelta(hours=1)


class OtpOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    INVALID_CODE = "INVALID_CODE"
    INVALID_OR_EXPIRED = "INVALID_OR_EXPIRED"


@dataclass(frozen=True)
class OtpVerification:
    outcome: OtpOutcome
    user_id: Optional[ObjectId] = None

    @property
    def ok(self) -> bool:
        return self.outcome is OtpOutcome.SUCCESS


class OtpService:
    def __init__(
        self,
        code_repo: OneTimeCodeRepository,
        user_repo: UserRepository,
        delivery: OtpDelivery,
        settings: OtpSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._codes = code_repo
        self._users = user_repo
        self._delivery = delivery
        self._settings = settings
        self._clock = clock

    async def issue(self, contact: str, purpose: CodePurpose) -> None:
        """Create and deliver a code for a known contact; silently no-op otherwise."""
        target = contact_key(contact)
        user = await self._users.find_by_contact(contact)
        if user is None:
            log.info("otp_request_ignored", reason="user_not_found", contact=mask_contact(target))
            return

        now = self._clock()
        max_per_hour = self._settings.otp_max_requests_per_hour
        if max_per_hour > 0:
            recent = await self._codes.count_recent(target, purpose, now, THROTTLE_WINDOW)
            if recent >= max_per_hour:
                log.warning(
                    "otp_request_throttled",
                    user_id=str(user.id),
                    purpose=purpose.value,
                    count=recent,
                )
                return

        code = generate_otp_code(self._settings.otp_length)
        await self._codes.insert(
            OneTimeCodeDoc(
                user_id=user.id,
                target=target,
                channel=channel_for(target),
                purpose=purpose,
                code_hash=hash_token(code),
                created_at=now,
                expires_at=now + timedelta(seconds=self._settings.otp_ttl_seconds),
            )
        )
        log.info(
            "otp_issued",
            user_id=str(user.id),
            purpose=purpose.value,
            channel=channel_for(target).value,
        )

        destination = user.email if channel_for(target) is Channel.EMAIL else user.phone
        await self._delivery.send(destination or target, code, purpose.value, user_name=user.name)

    async def verify(self, contact: str, purpose: CodePurpose, code: str) -> OtpVerification:
        target = contact_key(contact)
        now = self._clock()
        current = await self._codes.find_current(target, purpose, now)
        if current is None:
            return OtpVerification(OtpOutcome.INVALID_OR_EXPIRED)

        max_attempts = self._settings.otp_max_attempts
        if max_attempts > 0 and current.attempts >= max_attempts:
            log.warning("otp_attempts_exhausted", purpose=purpose.value, code_id=str(current.id))
            return OtpVerification(OtpOutcome.INVALID_OR_EXPIRED)

        if not token_hashes_match(code, current.code_hash):
            await self._codes.increment_attempts(current.id)
            log.info(
                "otp_mismatch",
                purpose=purpose.value,
                code_id=str(current.id),
                attempts=current.attempts + 1,
            )
            return OtpVerification(OtpOutcome.INVALID_CODE)

        if not await self._codes.consume(current.id, now):
            log.warning("otp_consume_lost_race", code_id=str(current.id))
            return OtpVerification(OtpOutcome.INVALID_OR_EXPIRED)

        log.info("otp_verified", purpose=purpose.value, user_id=str(current.user_id))
        return OtpVerification(OtpOutcome.SUCCESS, user_id=current.user_id)
