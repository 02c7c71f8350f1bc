"""
Persisted device session snapshot.

Only the fields below survive a restart. Everything else (current state,
in-flight requests) is rebuilt by DeviceSession.start().

JsonFileSessionStore writes the snapshot atomically (temp file + rename) and
restricts the file to its owner, since it holds bearer tokens.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger

log = get_logger(__name__)


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    pin_configured: bool = False
    last_contact: Optional[str] = None
    force_otp_next: bool = False
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    last_active_at: Optional[datetime] = None
    remember_me: bool = False
    push_token: Optional[str] = None


class SessionStore(Protocol):
    def load(self) -> SessionSnapshot: ...

    def save(self, snapshot: SessionSnapshot) -> None: ...


class MemorySessionStore:
    """In-process store; for tests and short-lived tools."""

    def __init__(self, snapshot: Optional[SessionSnapshot] = None) -> None:
        self._data = (snapshot or SessionSnapshot()).model_dump_json()

    def load(self) -> SessionSnapshot:
        return SessionSnapshot.model_validate_json(self._data)

    def save(self, snapshot: SessionSnapshot) -> None:
        self._data = snapshot.model_dump_json()


class JsonFileSessionStore:
    def __init__(self, path: str) -> None:
        self._path = path

    def load(self) -> SessionSnapshot:
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                raw = fh.read()
        except FileNotFoundError:
            return SessionSnapshot()
        try:
            return SessionSnapshot.model_validate_json(raw)
        except PydanticValidationError:
            log.warning("session_snapshot_corrupt", path=self._path)
            return SessionSnapshot()

    def save(self, snapshot: SessionSnapshot) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".tmp")
        try:
            os.fchmod(fd, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(snapshot.model_dump_json())
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
