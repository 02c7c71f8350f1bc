"""Build a DeviceSession from DEVICE_* settings."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx

from client.api import CredentialApiClient
from client.session import DeviceSession
from client.storage import JsonFileSessionStore, SessionStore
from config import DeviceClientSettings


def build_device_session(
    settings: Optional[DeviceClientSettings] = None,
    *,
    store: Optional[SessionStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DeviceSession:
    if settings is None:
        settings = DeviceClientSettings()
    api = CredentialApiClient(
        settings.api_base_url,
        timeout=settings.request_timeout_seconds,
        transport=transport,
    )
    return DeviceSession(
        api,
        store or JsonFileSessionStore(settings.state_path),
        inactivity_timeout=timedelta(seconds=settings.inactivity_timeout_seconds),
        request_timeout=settings.request_timeout_seconds,
        platform=settings.platform,
    )
