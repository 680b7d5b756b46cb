"""Shared fixtures: an in-memory Redis backend and the stores built on it."""

import fakeredis
import pytest

from config import JWTSettings
from infrastructure.cache.code_store import CodeStore


@pytest.fixture
def redis_client():
    """Fresh in-memory async Redis per test (no state shared between tests)."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def code_store(redis_client):
    return CodeStore(redis_client)


@pytest.fixture
def jwt_settings():
    return JWTSettings(
        jwt_secret="test-secret-with-enough-entropy-for-hs256",
        jwt_private_key="",
        jwt_public_key="",
        jwt_issuer="musicmaster",
        jwt_audience="musicmaster.api",
        access_token_ttl_seconds=900,
        refresh_token_ttl_seconds=2592000,
    )
