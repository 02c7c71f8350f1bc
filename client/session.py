"""
Device session state machine.

One DeviceSession per device owns the sign-in state and the persisted
snapshot. Every public transition runs under a single asyncio.Lock, so a
second tap while a request is in flight waits for the first to finish.

States:
    LOGGED_OUT          no usable session; enter a contact (or password)
    AWAITING_OTP        a LOGIN code was sent to ``last_contact``
    PIN_SETUP_REQUIRED  signed in via OTP, no PIN on this device yet
    AUTHENTICATED       tokens held, activity tracked
    PIN_LOCKED          a PIN is configured; unlock with it or recover

Network calls are bounded by ``request_timeout``. A timeout or transport
failure abandons the transition: the state and snapshot stay as they were
and SessionTimeoutError is raised.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import jwt

from client.api import CredentialApiClient, Tokens
from client.errors import (
    ApiError,
    ApiUnavailableError,
    InvalidCodeError,
    InvalidTransitionError,
    SessionError,
    SessionExpiredError,
    SessionTimeoutError,
    WrongPinError,
)
from client.storage import SessionSnapshot, SessionStore
from shared.datetime_utils import ensure_aware, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

PIN_RE = re.compile(r"^\d{4,8}$")
DEFAULT_INACTIVITY_TIMEOUT = timedelta(minutes=30)


class SessionState(str, Enum):
    LOGGED_OUT = "LOGGED_OUT"
    AWAITING_OTP = "AWAITING_OTP"
    PIN_SETUP_REQUIRED = "PIN_SETUP_REQUIRED"
    AUTHENTICATED = "AUTHENTICATED"
    PIN_LOCKED = "PIN_LOCKED"


def access_token_usable(token: Optional[str], now: datetime) -> bool:
    """Structural check of a cached access token: three segments, not refresh, exp in the future.

    The signature is not checked here; the server does that on every call.
    """
    if not token or token.count(".") != 2:
        return False
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return False
    if claims.get("type") == "refresh":
        return False
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False
    return exp > now.timestamp()


def _subject(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        return jwt.decode(token, options={"verify_signature": False}).get("sub")
    except jwt.InvalidTokenError:
        return None


class DeviceSession:
    def __init__(
        self,
        api: CredentialApiClient,
        store: SessionStore,
        *,
        inactivity_timeout: timedelta = DEFAULT_INACTIVITY_TIMEOUT,
        request_timeout: float = 15.0,
        platform: str = "android",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._api = api
        self._store = store
        self._inactivity_timeout = inactivity_timeout
        self._request_timeout = request_timeout
        self._platform = platform
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = SessionState.LOGGED_OUT
        self._snapshot = store.load()
        self._background: set[asyncio.Task] = set()

    # ── introspection ─────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot.model_copy()

    @property
    def access_token(self) -> Optional[str]:
        if self._state is SessionState.AUTHENTICATED:
            return self._snapshot.access_token
        return None

    # ── internals ─────────────────────────────────────────────────────────────

    def _require(self, *allowed: SessionState) -> None:
        if self._state not in allowed:
            raise InvalidTransitionError()

    def _save(self, **changes) -> None:
        snapshot = self._snapshot.model_copy(update=changes)
        self._store.save(snapshot)
        self._snapshot = snapshot

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._request_timeout)
        except (asyncio.TimeoutError, ApiUnavailableError) as e:
            log.warning("session_call_failed", state=self._state.value, error_type=type(e).__name__)
            raise SessionTimeoutError() from e

    def _is_inactive(self) -> bool:
        last = ensure_aware(self._snapshot.last_active_at)
        if last is None:
            return True
        return self._clock() - last > self._inactivity_timeout

    def _token_fields(self, tokens: Tokens) -> dict:
        fields = {"access_token": tokens.access_token}
        if tokens.refresh_token:
            fields["refresh_token"] = tokens.refresh_token
        return fields

    def _enter_authenticated(self, **changes) -> None:
        self._save(last_active_at=self._clock(), **changes)
        self._state = SessionState.AUTHENTICATED
        log.info("session_authenticated", user_id=_subject(self._snapshot.access_token))
        self._schedule_push_registration()

    def _end_session(self) -> None:
        """Drop tokens; the PIN marker and last contact stay for the PIN lock."""
        self._schedule_push_unregistration()
        self._save(access_token=None, refresh_token=None)
        self._state = (
            SessionState.PIN_LOCKED if self._snapshot.pin_configured else SessionState.LOGGED_OUT
        )

    # ── background push registration ──────────────────────────────────────────

    def _spawn(self, coro: Awaitable[None], event: str) -> None:
        async def runner() -> None:
            try:
                await asyncio.wait_for(coro, timeout=self._request_timeout)
            except Exception as e:
                log.warning(event, error_type=type(e).__name__)

        task = asyncio.get_running_loop().create_task(runner())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _schedule_push_registration(self) -> None:
        token, access = self._snapshot.push_token, self._snapshot.access_token
        if token and access:
            self._spawn(
                self._api.register_push_token(access, token, self._platform),
                "push_register_failed",
            )

    def _schedule_push_unregistration(self) -> None:
        token, access = self._snapshot.push_token, self._snapshot.access_token
        if token and access:
            self._spawn(
                self._api.unregister_push_token(access, token),
                "push_unregister_failed",
            )

    async def wait_for_background(self) -> None:
        """Wait for in-flight push (un)registration; used on shutdown and in tests."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── transitions ───────────────────────────────────────────────────────────

    async def start(self) -> SessionState:
        """Cold start: rebuild the state from the persisted snapshot."""
        async with self._lock:
            self._snapshot = self._store.load()

            if self._snapshot.pin_configured:
                self._state = SessionState.PIN_LOCKED
            elif not access_token_usable(self._snapshot.access_token, self._clock()):
                self._save(access_token=None, refresh_token=None)
                self._state = SessionState.LOGGED_OUT
            elif not self._snapshot.remember_me and self._is_inactive():
                log.info("session_inactivity_logout", phase="start")
                self._end_session()
            else:
                self._enter_authenticated()

            log.info("session_started", state=self._state.value)
            return self._state

    async def submit_contact(self, contact: str) -> SessionState:
        """Phone/e-mail entry. Goes to the PIN lock if the account has a PIN."""
        async with self._lock:
            self._require(SessionState.LOGGED_OUT)
            contact = (contact or "").strip()
            if not contact:
                raise SessionError("Please enter your phone number or email.")

            if not self._snapshot.force_otp_next:
                try:
                    has_pin = await self._call(self._api.has_pin(contact))
                except ApiError as e:
                    raise SessionError() from e
                if has_pin:
                    self._save(last_contact=contact, pin_configured=True)
                    self._state = SessionState.PIN_LOCKED
                    return self._state

            try:
                await self._call(self._api.request_otp(contact))
            except ApiError as e:
                raise SessionError() from e
            self._save(last_contact=contact, force_otp_next=False)
            self._state = SessionState.AWAITING_OTP
            return self._state

    async def resend_code(self) -> None:
        async with self._lock:
            self._require(SessionState.AWAITING_OTP)
            try:
                await self._call(self._api.request_otp(self._snapshot.last_contact))
            except ApiError as e:
                raise SessionError() from e

    async def cancel(self) -> SessionState:
        """Abandon the code entry screen."""
        async with self._lock:
            self._require(SessionState.AWAITING_OTP)
            self._state = SessionState.LOGGED_OUT
            return self._state

    async def verify_code(self, code: str) -> SessionState:
        async with self._lock:
            self._require(SessionState.AWAITING_OTP)
            try:
                tokens = await self._call(
                    self._api.verify_otp(self._snapshot.last_contact, (code or "").strip())
                )
            except ApiError as e:
                raise InvalidCodeError() from e
            if tokens is None:
                raise InvalidCodeError()

            if self._snapshot.pin_configured:
                self._enter_authenticated(**self._token_fields(tokens))
            else:
                self._save(last_active_at=self._clock(), **self._token_fields(tokens))
                self._state = SessionState.PIN_SETUP_REQUIRED
            return self._state

    async def set_pin(self, pin: str) -> SessionState:
        async with self._lock:
            self._require(SessionState.PIN_SETUP_REQUIRED)
            if not PIN_RE.match(pin or ""):
                raise SessionError("PIN must be 4 to 8 digits.")
            try:
                await self._call(self._api.set_pin(self._snapshot.access_token, pin))
            except ApiError as e:
                if e.is_unauthorized:
                    self._save(access_token=None, refresh_token=None)
                    self._state = SessionState.LOGGED_OUT
                    raise SessionExpiredError() from e
                raise SessionError() from e
            self._enter_authenticated(pin_configured=True)
            return self._state

    async def unlock(self, pin: str) -> SessionState:
        async with self._lock:
            self._require(SessionState.PIN_LOCKED)
            contact = self._snapshot.last_contact
            if not contact:
                raise SessionError("Please sign in with a one-time code.")
            try:
                tokens = await self._call(self._api.login_pin(contact, pin))
            except ApiError as e:
                log.info("session_unlock_failed", status_code=e.status_code)
                raise WrongPinError() from e
            self._enter_authenticated(**self._token_fields(tokens))
            return self._state

    async def forgot_pin(self) -> SessionState:
        """Drop the local PIN and force the next sign-in through an OTP."""
        async with self._lock:
            self._require(SessionState.PIN_LOCKED)
            self._schedule_push_unregistration()
            self._save(
                pin_configured=False,
                access_token=None,
                refresh_token=None,
                last_contact=None,
                force_otp_next=True,
            )
            self._state = SessionState.LOGGED_OUT
            log.info("session_pin_forgotten")
            return self._state

    async def logout(self) -> SessionState:
        async with self._lock:
            self._require(SessionState.AUTHENTICATED)
            self._end_session()
            log.info("session_logged_out", state=self._state.value)
            return self._state

    async def change_user(self) -> SessionState:
        """Forget everything tied to the current account on this device."""
        async with self._lock:
            self._schedule_push_unregistration()
            self._save(
                pin_configured=False,
                access_token=None,
                refresh_token=None,
                last_contact=None,
                force_otp_next=False,
            )
            self._state = SessionState.LOGGED_OUT
            return self._state

    async def login_with_password(
        self, email: str, password: str, remember_me: bool = False
    ) -> SessionState:
        """E-mail + password sign-in (admin/web path); skips the PIN flow."""
        async with self._lock:
            self._require(SessionState.LOGGED_OUT)
            try:
                tokens = await self._call(self._api.login(email, password))
            except ApiError as e:
                raise SessionError("Invalid email or password.") from e
            self._enter_authenticated(
                remember_me=remember_me,
                last_contact=email.strip().lower(),
                **self._token_fields(tokens),
            )
            return self._state

    async def touch(self) -> SessionState:
        """Record user activity; logs out if the inactivity window has passed."""
        async with self._lock:
            if self._state is not SessionState.AUTHENTICATED:
                return self._state
            if not self._snapshot.remember_me and self._is_inactive():
                log.info("session_inactivity_logout", phase="touch")
                self._end_session()
            else:
                self._save(last_active_at=self._clock())
            return self._state

    async def refresh_access_token(self) -> str:
        """Swap the refresh token for a new access token after a 401."""
        async with self._lock:
            self._require(SessionState.AUTHENTICATED)
            refresh = self._snapshot.refresh_token
            if not refresh:
                self._end_session()
                raise SessionExpiredError()
            try:
                tokens = await self._call(self._api.refresh(refresh))
            except ApiError as e:
                if e.is_unauthorized:
                    self._end_session()
                    raise SessionExpiredError() from e
                raise SessionError() from e
            self._save(access_token=tokens.access_token, last_active_at=self._clock())
            return tokens.access_token

    async def set_push_token(self, token: Optional[str]) -> None:
        """Store the device's push token; registers it now if signed in."""
        async with self._lock:
            self._save(push_token=token)
            if self._state is SessionState.AUTHENTICATED:
                self._schedule_push_registration()
