"""
Async client for the credential API, used by the device session.

Thin typed wrapper over httpx.AsyncClient: one method per endpoint, camelCase
on the wire, snake_case in Python. Non-2xx responses raise ApiError with the
status and the server's error ``code`` (never its message); transport
failures and timeouts raise ApiUnavailableError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from client.errors import ApiError, ApiUnavailableError
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Tokens:
    access_token: str
    refresh_token: Optional[str]
    expires_in: int


def _tokens_from(body: dict) -> Tokens:
    return Tokens(
        access_token=body["accessToken"],
        refresh_token=body.get("refreshToken"),
        expires_in=int(body.get("expiresIn", 0)),
    )


class CredentialApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CredentialApiClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        access_token: Optional[str] = None,
    ) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.TransportError as e:
            log.warning("credential_api_unavailable", path=path, error_type=type(e).__name__)
            raise ApiUnavailableError() from e

        if response.is_success:
            return response.json()

        error_code = None
        try:
            error_code = response.json().get("code")
        except ValueError:
            error_code = None
        log.info("credential_api_error", path=path, status_code=response.status_code, error_code=error_code)
        raise ApiError(response.status_code, error_code)

    async def login(self, email: str, password: str) -> Tokens:
        body = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return _tokens_from(body)

    async def request_otp(self, contact: str, purpose: str = "LOGIN") -> None:
        await self._request("POST", "/auth/request-otp", json={"contact": contact, "type": purpose})

    async def verify_otp(self, contact: str, code: str, purpose: str = "LOGIN") -> Optional[Tokens]:
        body = await self._request(
            "POST",
            "/auth/verify-otp",
            json={"contact": contact, "type": purpose, "code": code},
        )
        return _tokens_from(body) if "accessToken" in body else None

    async def has_pin(self, contact: str) -> bool:
        body = await self._request("GET", "/auth/has-pin", params={"contact": contact})
        return bool(body.get("hasPin"))

    async def login_pin(self, contact: str, pin: str) -> Tokens:
        body = await self._request("POST", "/auth/login-pin", json={"contact": contact, "pin": pin})
        return _tokens_from(body)

    async def set_pin(self, access_token: str, new_pin: str) -> None:
        await self._request(
            "POST", "/auth/set-pin", json={"newPin": new_pin}, access_token=access_token
        )

    async def refresh(self, refresh_token: str) -> Tokens:
        body = await self._request(
            "POST", "/auth/refresh-token", json={"refreshToken": refresh_token}
        )
        return _tokens_from(body)

    async def profile(self, access_token: str) -> dict:
        return await self._request("GET", "/auth/profile", access_token=access_token)

    async def register_push_token(self, access_token: str, token: str, platform: str) -> None:
        await self._request(
            "POST",
            "/notifications/register-token",
            json={"token": token, "platform": platform},
            access_token=access_token,
        )

    async def unregister_push_token(self, access_token: str, token: str) -> None:
        await self._request(
            "POST",
            "/notifications/unregister-token",
            json={"token": token},
            access_token=access_token,
        )
