"""Unit tests for AppSettings and sub-configs."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import (
    AppSettings,
    DatabaseSettings,
    JWTSettings,
    RedisSettings,
    SmsSettings,
    VerificationSettings,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def with_mongo(monkeypatch):
    """Set the required MONGODB_URI so AppSettings can be instantiated."""
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
    return monkeypatch


# ---------------------------------------------------------------------------
# DatabaseSettings
# ---------------------------------------------------------------------------


class TestDatabaseSettings:
    def test_loads_mongodb_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        assert DatabaseSettings().mongodb_uri == "mongodb://localhost:27017/"

    def test_default_db_name(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        monkeypatch.delenv("DB_NAME", raising=False)
        assert DatabaseSettings().db_name == "auth-service"

    def test_missing_mongodb_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        with pytest.raises(PydanticValidationError):
            DatabaseSettings()


# ---------------------------------------------------------------------------
# RedisSettings
# ---------------------------------------------------------------------------


class TestRedisSettings:
    def test_redis_uri_wins(self, monkeypatch):
        monkeypatch.setenv("REDIS_URI", "redis://cache:6380/2")
        monkeypatch.setenv("REDIS_HOST", "ignored")
        assert RedisSettings().url == "redis://cache:6380/2"

    def test_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("REDIS_URI", raising=False)
        monkeypatch.setenv("REDIS_HOST", "cache")
        monkeypatch.setenv("REDIS_PORT", "6380")
        monkeypatch.setenv("REDIS_PASSWORD", "pw")
        monkeypatch.setenv("REDIS_DB", "1")
        assert RedisSettings().url == "redis://:pw@cache:6380/1"

    def test_url_without_password(self, monkeypatch):
        for var in ("REDIS_URI", "REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "REDIS_DB"):
            monkeypatch.delenv(var, raising=False)
        assert RedisSettings().url == "redis://localhost:6379/0"

    def test_retry_defaults(self, monkeypatch):
        monkeypatch.delenv("REDIS_MAX_RETRIES", raising=False)
        s = RedisSettings()
        assert s.redis_max_retries == 3
        assert s.redis_backoff_cap_seconds == 2.0


# ---------------------------------------------------------------------------
# JWTSettings
# ---------------------------------------------------------------------------


class TestJWTSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "JWT_ISSUER",
            "JWT_AUDIENCE",
            "ACCESS_TOKEN_TTL_SECONDS",
            "REFRESH_TOKEN_TTL_SECONDS",
            "COOKIE_SECURE",
            "JWT_PRIVATE_KEY",
            "JWT_PUBLIC_KEY",
            "JWT_SECRET",
        ):
            monkeypatch.delenv(var, raising=False)
        s = JWTSettings()
        assert s.jwt_issuer == "musicmaster"
        assert s.jwt_audience == "musicmaster.api"
        assert s.access_token_ttl_seconds == 900
        assert s.refresh_token_ttl_seconds == 2592000


@pytest.mark.parametrize(
    "private_key, public_key, expected",
    [
        ("private", "public", True),
        (None, None, False),
    ],
    ids=["keys_present", "keys_absent"],
)
def test_jwt_use_rs256(monkeypatch, private_key, public_key, expected):
    if private_key:
        monkeypatch.setenv("JWT_PRIVATE_KEY", private_key)
        monkeypatch.setenv("JWT_PUBLIC_KEY", public_key)
    else:
        monkeypatch.delenv("JWT_PRIVATE_KEY", raising=False)
        monkeypatch.delenv("JWT_PUBLIC_KEY", raising=False)
    assert JWTSettings().use_rs256 is expected


# ---------------------------------------------------------------------------
# SMS / verification
# ---------------------------------------------------------------------------


class TestSmsSettings:
    def test_enabled_by_default(self, monkeypatch):
        monkeypatch.delenv("SMS_ENABLED", raising=False)
        assert SmsSettings().sms_enabled is True

    def test_twilio_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("TWILIO_AUTH_TOKEN", "tok")
        monkeypatch.setenv("TWILIO_PHONE_NUMBER", "+15550000000")
        s = SmsSettings()
        assert (s.twilio_account_sid, s.twilio_auth_token, s.twilio_phone_number) == (
            "AC123",
            "tok",
            "+15550000000",
        )


class TestVerificationSettings:
    def test_defaults(self, monkeypatch):
        for var in ("CODE_TTL_SECONDS", "MAX_ATTEMPTS", "ATOMIC_ATTEMPTS"):
            monkeypatch.delenv(var, raising=False)
        s = VerificationSettings()
        assert s.code_ttl_seconds == 300
        assert s.max_attempts == 3
        assert s.atomic_attempts is True
        assert s.revoke_code_on_send_failure is True


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env, expected",
    [("production", True), ("development", False)],
    ids=["production", "development"],
)
def test_is_production(with_mongo, env, expected):
    with_mongo.setenv("ENV", env)
    with_mongo.setenv("SMS_ENABLED", "true")
    assert AppSettings().is_production is expected


class TestAppSettings:
    def test_sub_configs_populated(self, with_mongo):
        s = AppSettings()
        for attr in ("db", "redis", "jwt", "sms", "verification", "logging", "sentry"):
            assert getattr(s, attr) is not None, f"sub-config '{attr}' is None"

    def test_cors_origins_default(self, with_mongo):
        with_mongo.delenv("CORS_ORIGINS", raising=False)
        assert AppSettings().cors_origins == ["*"]

    def test_production_refuses_disabled_sms(self, with_mongo):
        with_mongo.setenv("ENV", "production")
        with_mongo.setenv("SMS_ENABLED", "false")
        with pytest.raises(PydanticValidationError, match="SMS_ENABLED"):
            AppSettings()

    def test_development_allows_disabled_sms(self, with_mongo):
        with_mongo.setenv("ENV", "development")
        with_mongo.setenv("SMS_ENABLED", "false")
        assert AppSettings().sms.sms_enabled is False
