"""
Device-side error hierarchy.

ApiError and its subclasses describe what came back from the credential API.
SessionError and its subclasses are what the device session raises to its
caller: short, user-safe messages that never include server error text.
"""

from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Non-2xx response from the credential API."""

    def __init__(self, status_code: int, error_code: Optional[str] = None) -> None:
        super().__init__(f"credential API returned {status_code}")
        self.status_code = status_code
        self.error_code = error_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class ApiUnavailableError(ApiError):
    """The request never produced a response (timeout, DNS, connection reset)."""

    def __init__(self) -> None:
        super().__init__(0, "unavailable")


class SessionError(Exception):
    """Base for everything DeviceSession raises."""

    message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidTransitionError(SessionError):
    message = "That action is not available right now."


class InvalidCodeError(SessionError):
    message = "Invalid code."


class WrongPinError(SessionError):
    message = "Wrong PIN."


class SessionTimeoutError(SessionError):
    message = "The server did not respond. Please try again."


class SessionExpiredError(SessionError):
    message = "Your session has expired. Please sign in again."
