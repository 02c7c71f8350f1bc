"""
CredentialService: the operations behind the /auth and /notifications routes.

Composes the user repository, the secret hasher, OtpService,
ResetTokenService and TokenService. Route handlers stay thin: they validate
the body, call one method here and shape the response.

Unauthenticated operations never reveal whether an account exists:
- request_otp / request_*_reset always succeed from the caller's view
- login / login_with_pin fail with the same message whether the user is
  unknown, has no credential set, or typed the wrong one
- has_pin answers False for unknown contacts

PBKDF2/argon2 work runs in a worker thread (asyncio.to_thread) so it does not
stall the event loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId

from config import HasherSettings
from errors import (
    AuthenticationError,
    InvalidCodeError,
    InvalidOrExpiredCodeError,
    InvalidResetTokenError,
    NotFoundError,
)
from infrastructure.delivery import OtpDelivery
from repositories.push_token_repository import PushTokenRepository
from repositories.user_repository import UserRepository
from schemas.models.one_time_code import CodePurpose
from schemas.models.reset_token import ResetPurpose
from schemas.models.user import UserDoc
from services.otp_service import OtpOutcome, OtpService
from services.reset_token_service import ResetTokenService
from services.token_service import TokenService
from shared.contacts import is_email, mask_contact, normalize_contact
from shared.crypto import hash_secret, needs_rehash, verify_secret
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

INVALID_EMAIL_OR_PASSWORD = "Invalid email or password"
INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class CredentialService:
    def __init__(
        self,
        user_repo: UserRepository,
        push_repo: PushTokenRepository,
        otp_service: OtpService,
        reset_service: ResetTokenService,
        token_service: TokenService,
        delivery: OtpDelivery,
        hasher_settings: HasherSettings,
    ) -> None:
        self._users = user_repo
        self._push = push_repo
        self._otp = otp_service
        self._resets = reset_service
        self._tokens = token_service
        self._delivery = delivery
        self._hasher = hasher_settings
        # Verified against when the account is missing so both paths cost a hash
        self._dummy_hash = hash_secret(
            generate_secure_token(16),
            iterations=hasher_settings.pbkdf2_iterations,
            scheme=hasher_settings.hash_scheme,
        )

    # ── hashing ───────────────────────────────────────────────────────────────

    async def _hash(self, secret: str) -> str:
        return await asyncio.to_thread(
            hash_secret,
            secret,
            iterations=self._hasher.pbkdf2_iterations,
            scheme=self._hasher.hash_scheme,
        )

    async def _verify(self, secret: str, encoded: Optional[str]) -> bool:
        if not encoded:
            await asyncio.to_thread(verify_secret, secret, self._dummy_hash)
            return False
        return await asyncio.to_thread(verify_secret, secret, encoded)

    def _is_outdated(self, encoded: str) -> bool:
        return needs_rehash(
            encoded,
            iterations=self._hasher.pbkdf2_iterations,
            scheme=self._hasher.hash_scheme,
        )

    def _issue_pair(self, user: UserDoc) -> TokenPair:
        user_id = str(user.id)
        return TokenPair(
            access_token=self._tokens.issue_access(user_id, user.email, user.effective_role),
            refresh_token=self._tokens.issue_refresh(user_id),
            expires_in=self._tokens.access_ttl_seconds,
        )

    # ── login paths ───────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> TokenPair:
        user = await self._users.find_by_email(email)
        stored = user.password_hash if user else None
        if not await self._verify(password, stored):
            log.warning(
                "login_failed",
                method="password",
                reason="user_not_found" if user is None else "invalid_password",
            )
            raise AuthenticationError(INVALID_EMAIL_OR_PASSWORD)

        if self._is_outdated(stored):
            await self._users.update_credentials(user.id, password_hash=await self._hash(password))
            log.info("credential_rehashed", user_id=str(user.id), credential="password")

        log.info("login_success", user_id=str(user.id), method="password")
        return self._issue_pair(user)

    async def login_with_pin(self, contact: str, pin: str) -> TokenPair:
        user = await self._users.find_by_contact(contact)
        stored = user.pin_hash if user else None
        if not await self._verify(pin, stored):
            log.warning(
                "login_failed",
                method="pin",
                reason="user_not_found" if user is None else "invalid_pin",
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        if self._is_outdated(stored):
            await self._users.update_credentials(user.id, pin_hash=await self._hash(pin))
            log.info("credential_rehashed", user_id=str(user.id), credential="pin")

        log.info("login_success", user_id=str(user.id), method="pin")
        return self._issue_pair(user)

    async def has_pin(self, contact: str) -> bool:
        user = await self._users.find_by_contact(contact)
        return bool(user and user.has_pin)

    # ── one-time codes ────────────────────────────────────────────────────────

    async def request_otp(self, contact: str, purpose: CodePurpose) -> None:
        await self._otp.issue(contact, purpose)

    async def _consume_code(self, contact: str, purpose: CodePurpose, code: str) -> ObjectId:
        result = await self._otp.verify(contact, purpose, code)
        if result.outcome is OtpOutcome.INVALID_CODE:
            raise InvalidCodeError("Invalid code")
        if not result.ok:
            raise InvalidOrExpiredCodeError("Invalid or expired code")
        if result.user_id is not None:
            return result.user_id
        user = await self._users.find_by_contact(contact)
        if user is None:
            raise InvalidOrExpiredCodeError("Invalid or expired code")
        return user.id

    async def verify_otp(
        self, contact: str, purpose: CodePurpose, code: str
    ) -> Optional[TokenPair]:
        """LOGIN codes return a token pair; PASSWORD/PIN codes return None."""
        user_id = await self._consume_code(contact, purpose, code)
        if purpose is not CodePurpose.LOGIN:
            return None

        user = await self._users.find_by_id(user_id)
        if user is None:
            log.warning("login_failed", method="otp", reason="user_not_found")
            raise AuthenticationError("User not found")
        log.info("login_success", user_id=str(user.id), method="otp")
        return self._issue_pair(user)

    # ── PIN / password mutation ───────────────────────────────────────────────

    async def set_pin(self, user_id: ObjectId, new_pin: str) -> None:
        if not await self._users.update_credentials(user_id, pin_hash=await self._hash(new_pin)):
            raise NotFoundError("User not found")
        log.info("pin_set", user_id=str(user_id))

    async def _request_reset(self, email: str, purpose: ResetPurpose) -> None:
        email = normalize_contact(email)
        user = await self._users.find_by_email(email) if is_email(email) else None
        if user is None:
            log.info(
                "reset_request_ignored",
                reason="user_not_found",
                purpose=purpose.value,
                contact=mask_contact(email),
            )
            return
        token = await self._resets.issue(user.id, purpose)
        link = self._resets.build_link(token, purpose)
        await self._delivery.send_reset_link(user.email, link, purpose.value, user_name=user.name)

    async def request_password_reset(self, email: str) -> None:
        await self._request_reset(email, ResetPurpose.PASSWORD)

    async def request_pin_reset(self, email: str) -> None:
        await self._request_reset(email, ResetPurpose.PIN)

    async def _redeem_or_fail(self, token: str, purpose: ResetPurpose) -> ObjectId:
        user_id = await self._resets.redeem(token, purpose)
        if user_id is None:
            raise InvalidResetTokenError("Invalid or expired token")
        return user_id

    async def reset_password(self, token: str, new_password: str) -> None:
        user_id = await self._redeem_or_fail(token, ResetPurpose.PASSWORD)
        await self._users.update_credentials(user_id, password_hash=await self._hash(new_password))
        log.info("password_reset", user_id=str(user_id), method="link")

    async def reset_pin(self, token: str, new_pin: str) -> None:
        user_id = await self._redeem_or_fail(token, ResetPurpose.PIN)
        await self._users.update_credentials(user_id, pin_hash=await self._hash(new_pin))
        log.info("pin_reset", user_id=str(user_id), method="link")

    async def reset_password_otp(self, contact: str, code: str, new_password: str) -> None:
        user_id = await self._consume_code(contact, CodePurpose.PASSWORD, code)
        await self._users.update_credentials(user_id, password_hash=await self._hash(new_password))
        log.info("password_reset", user_id=str(user_id), method="otp")

    async def reset_pin_otp(self, contact: str, code: str, new_pin: str) -> None:
        user_id = await self._consume_code(contact, CodePurpose.PIN, code)
        await self._users.update_credentials(user_id, pin_hash=await self._hash(new_pin))
        log.info("pin_reset", user_id=str(user_id), method="otp")

    # ── tokens & identity ─────────────────────────────────────────────────────

    @property
    def access_ttl_seconds(self) -> int:
        return self._tokens.access_ttl_seconds

    async def refresh_token(self, refresh_token: str) -> str:
        return await self._tokens.refresh(refresh_token)

    def authenticate(self, access_token: str) -> dict:
        """Validate a bearer token; returns its claims."""
        return self._tokens.verify_access(access_token)

    async def profile(self, user_id: ObjectId | str) -> UserDoc:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # ── push tokens ───────────────────────────────────────────────────────────

    async def register_push_token(
        self, user_id: ObjectId, token: str, platform: Optional[str]
    ) -> None:
        await self._push.upsert(token, user_id, platform)
        log.info("push_token_registered", user_id=str(user_id), platform=platform)

    async def unregister_push_token(self, user_id: ObjectId, token: str) -> None:
        removed = await self._push.delete(token, user_id)
        log.info("push_token_unregistered", user_id=str(user_id), removed=removed)
