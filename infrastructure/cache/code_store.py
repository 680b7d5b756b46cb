"""TTL key/value store for verification codes and correlation tokens.

Every call is a round trip to Redis; nothing is cached in-process. Backend
failures are raised as TransportError so issuance and verification never
silently no-op.

The 2FA compare-and-count runs as a Lua script so a wrong-code increment
and its TTL-preserving rewrite happen in one atomic step per key.
"""

from contextlib import contextmanager
from enum import IntEnum
from typing import Iterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from errors import TransportError
from shared.logging import get_logger

log = get_logger(__name__)


class AttemptResult(IntEnum):
    """Return values of the verify-attempt script."""

    MISSING = -2
    EXHAUSTED = -1
    MISMATCH = 0
    VERIFIED = 1


# KEYS[1] = record key, ARGV[1] = submitted code, ARGV[2] = max attempts.
# The TTL is read before the rewrite; a record with no positive TTL left is
# not rewritten, so an expiring record is never given a fresh lifetime.
VERIFY_ATTEMPT_SCRIPT = """
local raw = redis.call('GET', KEYS[1])
if not raw then
  return -2
end
local record = cjson.decode(raw)
if record['code'] == ARGV[1] then
  redis.call('DEL', KEYS[1])
  return 1
end
local attempts = (tonumber(record['attempts']) or 0) + 1
if attempts >= tonumber(ARGV[2]) then
  redis.call('DEL', KEYS[1])
  return -1
end
local ttl = redis.call('TTL', KEYS[1])
if ttl > 0 then
  record['attempts'] = attempts
  redis.call('SETEX', KEYS[1], ttl, cjson.encode(record))
end
return 0
"""


class CodeStore:
    def __init__(self, redis_client: aioredis.Redis) -> None:
        self._redis = redis_client

    @contextmanager
    def _backend_errors(self, operation: str, key: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            log.error(
                "code_store_error",
                operation=operation,
                namespace=key.split(":", 1)[0],
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError("Verification store is unavailable") from e

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Unconditionally write *value* under *key* with a fresh TTL."""
        with self._backend_errors("put", key):
            await self._redis.setex(key, ttl_seconds, value)

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if missing or expired."""
        with self._backend_errors("get", key):
            return await self._redis.get(key)

    async def remaining_ttl(self, key: str) -> Optional[int]:
        """Return the seconds left before *key* expires.

        Redis reports -2 for a missing key and -1 for a key without expiry;
        both come back as None.
        """
        with self._backend_errors("ttl", key):
            ttl = await self._redis.ttl(key)
        if ttl is None or ttl < 0:
            return None
        return int(ttl)

    async def delete(self, key: str) -> None:
        """Delete *key*. Deleting a missing key is not an error."""
        with self._backend_errors("delete", key):
            await self._redis.delete(key)

    async def verify_attempt(
        self, key: str, submitted_code: str, max_attempts: int
    ) -> AttemptResult:
        """Compare *submitted_code* with the JSON record at *key* and count misses."""
        with self._backend_errors("verify_attempt", key):
            result = await self._redis.eval(
                VERIFY_ATTEMPT_SCRIPT, 1, key, submitted_code, max_attempts
            )
        return AttemptResult(int(result))
