"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.delivery import OtpDelivery
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.sms.fast2sms import Fast2SmsProvider
from infrastructure.sms.protocol import SmsProvider
from repositories.indexes import (
    ONE_TIME_CODES,
    PUSH_TOKENS,
    RESET_TOKENS,
    USERS,
    ensure_indexes,
)
from repositories.one_time_code_repository import OneTimeCodeRepository
from repositories.push_token_repository import PushTokenRepository
from repositories.reset_token_repository import ResetTokenRepository
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.notification_routes import router as notification_router
from services.credential_service import CredentialService
from services.otp_service import OtpService
from services.reset_token_service import ResetTokenService
from services.token_service import TokenService
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_credential_service(
    db,
    settings: AppSettings,
    *,
    email_provider: EmailProvider,
    sms_provider: SmsProvider,
) -> CredentialService:
    """Wire repositories and services over *db* (an async pymongo database)."""
    user_repo = UserRepository(db[USERS])
    delivery = OtpDelivery(email_provider, sms_provider, demo_mode=settings.demo_mode)
    otp_service = OtpService(
        OneTimeCodeRepository(db[ONE_TIME_CODES]),
        user_repo,
        delivery,
        settings.otp,
    )
    reset_service = ResetTokenService(ResetTokenRepository(db[RESET_TOKENS]), settings.reset)
    token_service = TokenService(settings.jwt, user_repo)
    return CredentialService(
        user_repo=user_repo,
        push_repo=PushTokenRepository(db[PUSH_TOKENS]),
        otp_service=otp_service,
        reset_service=reset_service,
        token_service=token_service,
        delivery=delivery,
        hasher_settings=settings.hasher,
    )


def register_routers(app: FastAPI) -> None:
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(notification_router)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        env=settings.env,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        await ensure_indexes(db)

        http_client = HttpClient(timeout=settings.http_timeout_seconds)
        otp_ttl_minutes = settings.otp.otp_ttl_seconds // 60
        app.state.credential_service = build_credential_service(
            db,
            settings,
            email_provider=ZeptoMailProvider(
                settings.email,
                http_client,
                app_name=settings.app_name,
                otp_ttl_minutes=otp_ttl_minutes,
                reset_ttl_minutes=settings.reset.reset_token_ttl_seconds // 60,
            ),
            sms_provider=Fast2SmsProvider(
                settings.sms, http_client, otp_ttl_minutes=otp_ttl_minutes
            ),
        )
        log.info("app_started", env=settings.env, demo_mode=settings.demo_mode)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    register_routers(app)

    return app
