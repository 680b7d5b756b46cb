"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Sub-configs are composed onto AppSettings by a model_validator so every
component can be handed only the slice of configuration it needs.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "auth-service"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # REDIS_URI wins over the discrete host/port/password fields when set
    redis_uri: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    # Connection-level retry: bounded attempts, capped exponential backoff
    redis_max_retries: int = 3
    redis_backoff_base_seconds: float = 0.05
    redis_backoff_cap_seconds: float = 2.0
    redis_socket_timeout_seconds: float = 5.0

    @property
    def url(self) -> str:
        if self.redis_uri:
            return self.redis_uri
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "musicmaster"
    jwt_audience: str = "musicmaster.api"
    access_token_ttl_seconds: int = 900
    refresh_token_ttl_seconds: int = 2592000
    cookie_secure: bool = True

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class SmsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Explicit switch for the no-transport mode used outside production
    sms_enabled: bool = True

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    sms_timeout_seconds: float = 5.0
    sms_max_attempts: int = 3
    sms_backoff_base_seconds: float = 0.05
    sms_backoff_cap_seconds: float = 2.0


class VerificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    code_ttl_seconds: int = 300
    max_attempts: int = 3
    pending_token_ttl_seconds: int = 300

    # Run the 2FA compare-and-count as a single Lua script
    atomic_attempts: bool = True

    # Drop a just-issued code when its SMS could not be delivered
    revoke_code_on_send_failure: bool = True


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    # "json" or "console"; unset picks json in production, console elsewhere
    log_format: Optional[str] = None


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
    app_name: str = "MusicMaster"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    jwt: Optional[JWTSettings] = None
    sms: Optional[SmsSettings] = None
    verification: Optional[VerificationSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.sms is None:
            self.sms = SmsSettings()
        if self.verification is None:
            self.verification = VerificationSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        # The no-transport SMS mode is for non-production environments only
        if self.is_production and not self.sms.sms_enabled:
            raise ValueError("SMS_ENABLED=false is not allowed when ENV=production")

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
