"""
Shared test fixtures.

Repositories talk to pymongo's asyncio API; tests back them with mongomock
through a tiny adapter that exposes each collection method as a coroutine.
Delivery providers are replaced by recorders so tests can read the codes and
links that would have been sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import mongomock
import pytest
from bson import ObjectId

from app import build_credential_service
from config import (
    AppSettings,
    DatabaseSettings,
    HasherSettings,
    JWTSettings,
    OtpSettings,
    ResetTokenSettings,
)
from shared.crypto import hash_secret
from shared.datetime_utils import utcnow

TEST_ITERATIONS = 1_000
TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class AsyncCollection:
    """Awaitable facade over a mongomock collection."""

    def __init__(self, collection) -> None:
        self._collection = collection

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        async def call(*args, **kwargs):
            return attr(*args, **kwargs)

        return call


class AsyncDatabase:
    def __init__(self, database) -> None:
        self._database = database

    def __getitem__(self, name: str) -> AsyncCollection:
        return AsyncCollection(self._database[name])


@dataclass
class SentMessage:
    to: str
    purpose: str
    code: Optional[str] = None
    link: Optional[str] = None


@dataclass
class RecordingEmailProvider:
    sent: list[SentMessage] = field(default_factory=list)
    succeed: bool = True

    async def send_otp_email(self, email, user_name, otp_code, purpose) -> bool:
        self.sent.append(SentMessage(to=email, purpose=purpose, code=otp_code))
        return self.succeed

    async def send_reset_link_email(self, email, user_name, reset_link, purpose) -> bool:
        self.sent.append(SentMessage(to=email, purpose=purpose, link=reset_link))
        return self.succeed


@dataclass
class RecordingSmsProvider:
    sent: list[SentMessage] = field(default_factory=list)
    succeed: bool = True

    async def send_otp_sms(self, phone, otp_code, purpose) -> bool:
        self.sent.append(SentMessage(to=phone, purpose=purpose, code=otp_code))
        return self.succeed


def make_settings(**overrides) -> AppSettings:
    base = dict(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/", db_name="test"),
        jwt=JWTSettings(jwt_secret=TEST_JWT_SECRET),
        otp=OtpSettings(),
        reset=ResetTokenSettings(frontend_url="https://app.example.com"),
        hasher=HasherSettings(pbkdf2_iterations=TEST_ITERATIONS),
    )
    base.update(overrides)
    return AppSettings(**base)


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient(tz_aware=True)["test"]


@pytest.fixture
def db(mongo_db):
    return AsyncDatabase(mongo_db)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
def sms_provider():
    return RecordingSmsProvider()


@pytest.fixture
def credential_service(db, settings, email_provider, sms_provider):
    return build_credential_service(
        db, settings, email_provider=email_provider, sms_provider=sms_provider
    )


@pytest.fixture
def seed_user(mongo_db):
    """Insert a user row; secrets are hashed the way the service stores them."""

    def _seed(
        *,
        email: Optional[str] = "tech@example.com",
        phone: Optional[str] = "9876543210",
        password: Optional[str] = None,
        pin: Optional[str] = None,
        **extra,
    ) -> ObjectId:
        doc = {
            "email": email,
            "phone": phone,
            "name": "Asha Tech",
            "role": "TECHNICIAN",
            "password_hash": hash_secret(password, iterations=TEST_ITERATIONS) if password else None,
            "pin_hash": hash_secret(pin, iterations=TEST_ITERATIONS) if pin else None,
            "created_at": utcnow(),
        }
        doc.update(extra)
        return mongo_db["users"].insert_one(doc).inserted_id

    return _seed
