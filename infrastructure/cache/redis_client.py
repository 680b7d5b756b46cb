"""Async Redis connection factory.

Builds the single shared client used by the code store. The client retries
connection and timeout errors a bounded number of times with capped
exponential backoff. Anything still failing after that is raised to the
caller: verification codes cannot silently no-op.
"""

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from config import RedisSettings
from shared.logging import get_logger

log = get_logger(__name__)


def build_retry_policy(settings: RedisSettings) -> Retry:
    """Bounded retry with exponential backoff capped at a small ceiling."""
    return Retry(
        ExponentialBackoff(
            cap=settings.redis_backoff_cap_seconds,
            base=settings.redis_backoff_base_seconds,
        ),
        settings.redis_max_retries,
    )


async def create_redis_client(settings: RedisSettings) -> aioredis.Redis:
    """Connect to Redis and return a client.

    Raises:
        RedisError: if the server cannot be reached after retries.
    """
    client: aioredis.Redis = aioredis.from_url(
        settings.url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        retry=build_retry_policy(settings),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )
    try:
        await client.ping()
    except RedisError as e:
        log.error(
            "redis_connection_failed", error=str(e), error_type=type(e).__name__
        )
        await client.aclose()
        raise
    log.info("redis_connected", uri=settings.url.split("@")[-1])  # mask credentials
    return client
