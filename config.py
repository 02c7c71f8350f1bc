"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The credential server reads AppSettings; the device-side session reads
DeviceClientSettings (DEVICE_* variables) and never needs the server secrets.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "maintenance"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "maintenance-app"
    jwt_audience: str = "maintenance-app.api"
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 604800

    # RS256 keys (optional)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 secret (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_length: int = 6
    otp_ttl_seconds: int = 300
    # 0 disables the cutoff; the attempts counter still increments
    otp_max_attempts: int = 5
    # 0 disables the per-target request throttle
    otp_max_requests_per_hour: int = 5


class ResetTokenSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    reset_token_bytes: int = 32
    reset_token_ttl_seconds: int = 3600
    frontend_url: str = "http://localhost:3000"


class HasherSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    hash_scheme: str = "pbkdf2"  # "pbkdf2" | "argon2"
    pbkdf2_iterations: int = 100_000


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@maintenance-app.local"
    zepto_from_name: str = "Maintenance App"


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    fast2sms_api_key: str = ""
    fast2sms_route: str = "q"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "maintenance-app"
    # TYPE=demo suppresses out-of-band delivery and logs codes instead
    type: str = ""

    # CORS: all origins by default
    cors_origins: list[str] = ["*"]

    # Outbound HTTP timeout for e-mail/SMS providers
    http_timeout_seconds: float = 5.0

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    reset: Optional[ResetTokenSettings] = None
    hasher: Optional[HasherSettings] = None
    email: Optional[EmailSettings] = None
    sms: Optional[SmsSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.reset is None:
            self.reset = ResetTokenSettings()
        if self.hasher is None:
            self.hasher = HasherSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def demo_mode(self) -> bool:
        return self.type.lower() == "demo"


class DeviceClientSettings(BaseSettings):
    """Settings for the device-resident session (mobile/desktop client)."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="DEVICE_", extra="ignore"
    )

    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 15.0
    inactivity_timeout_seconds: int = 1800
    state_path: str = ".device-session.json"
    platform: str = "android"
