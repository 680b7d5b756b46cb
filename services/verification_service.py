"""
Verification code issuance and checking.

Two code classes share the code store but not their policy:

TwoFactorVerifier       — ``2fa:<user_id>``, JSON record with an attempt
                          counter. Three wrong codes burn the record.
PasswordChangeVerifier  — ``pwd-change:<user_id>``, bare code string. A
                          mismatch never mutates the record; there is no cap.

Both records live for 300 seconds. Issuing a code overwrites any live record
for the same user, which resets its TTL and attempt counter.
"""

from __future__ import annotations

from enum import Enum

from infrastructure.cache.code_store import AttemptResult, CodeStore
from schemas.models.verification import TwoFactorRecord
from shared.logging import get_logger

log = get_logger(__name__)

CODE_TTL_SECONDS = 300
MAX_ATTEMPTS = 3


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    MISMATCH = "mismatch"
    EXHAUSTED = "exhausted"
    MISSING = "missing"


_ATTEMPT_OUTCOMES = {
    AttemptResult.VERIFIED: VerificationOutcome.VERIFIED,
    AttemptResult.MISMATCH: VerificationOutcome.MISMATCH,
    AttemptResult.EXHAUSTED: VerificationOutcome.EXHAUSTED,
    AttemptResult.MISSING: VerificationOutcome.MISSING,
}


class TwoFactorVerifier:
    """Attempt-limited 2FA login codes.

    With ``atomic=True`` a check is one Lua round trip, so concurrent checks
    for the same user cannot race past the cap. ``atomic=False`` performs
    the same steps as separate get / ttl / put calls.
    """

    key_prefix = "2fa"

    def __init__(
        self,
        store: CodeStore,
        ttl_seconds: int = CODE_TTL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        atomic: bool = True,
    ) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.atomic = atomic

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def issue(self, user_id: str, code: str) -> None:
        record = TwoFactorRecord(code=code, attempts=0)
        await self._store.put(self._key(user_id), record.model_dump_json(), self.ttl_seconds)
        log.debug("two_factor_code_stored", user_id=user_id)

    async def check(self, user_id: str, submitted_code: str) -> VerificationOutcome:
        if self.atomic:
            result = await self._store.verify_attempt(
                self._key(user_id), submitted_code, self.max_attempts
            )
            outcome = _ATTEMPT_OUTCOMES[result]
        else:
            outcome = await self._check_stepwise(user_id, submitted_code)

        if outcome is VerificationOutcome.EXHAUSTED:
            log.warning("two_factor_attempts_exhausted", user_id=user_id)
        elif outcome is VerificationOutcome.VERIFIED:
            log.debug("two_factor_code_verified", user_id=user_id)
        return outcome

    async def _check_stepwise(
        self, user_id: str, submitted_code: str
    ) -> VerificationOutcome:
        key = self._key(user_id)
        raw = await self._store.get(key)
        if raw is None:
            return VerificationOutcome.MISSING

        record = TwoFactorRecord.model_validate_json(raw)
        if record.code == submitted_code:
            await self._store.delete(key)
            return VerificationOutcome.VERIFIED

        record.attempts += 1
        if record.attempts >= self.max_attempts:
            await self._store.delete(key)
            return VerificationOutcome.EXHAUSTED

        # Rewrite with the TTL left on the record, never a fresh one
        remaining = await self._store.remaining_ttl(key)
        if remaining is not None and remaining > 0:
            await self._store.put(key, record.model_dump_json(), remaining)
        return VerificationOutcome.MISMATCH

    async def verify(self, user_id: str, submitted_code: str) -> bool:
        return await self.check(user_id, submitted_code) is VerificationOutcome.VERIFIED

    async def remaining_attempts(self, user_id: str) -> int:
        """Attempts left on the live record; 0 when there is no record."""
        raw = await self._store.get(self._key(user_id))
        if raw is None:
            return 0
        record = TwoFactorRecord.model_validate_json(raw)
        return max(0, self.max_attempts - record.attempts)

    async def revoke(self, user_id: str) -> None:
        await self._store.delete(self._key(user_id))
        log.debug("two_factor_code_revoked", user_id=user_id)


class PasswordChangeVerifier:
    """Password-change codes: single stored value, no attempt counter."""

    key_prefix = "pwd-change"

    def __init__(self, store: CodeStore, ttl_seconds: int = CODE_TTL_SECONDS) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def issue(self, user_id: str, code: str) -> None:
        await self._store.put(self._key(user_id), code, self.ttl_seconds)
        log.debug("password_change_code_stored", user_id=user_id)

    async def check(self, user_id: str, submitted_code: str) -> VerificationOutcome:
        key = self._key(user_id)
        stored = await self._store.get(key)
        if stored is None:
            return VerificationOutcome.MISSING
        if stored != submitted_code:
            return VerificationOutcome.MISMATCH
        await self._store.delete(key)
        log.debug("password_change_code_verified", user_id=user_id)
        return VerificationOutcome.VERIFIED

    async def verify(self, user_id: str, submitted_code: str) -> bool:
        return await self.check(user_id, submitted_code) is VerificationOutcome.VERIFIED

    async def revoke(self, user_id: str) -> None:
        await self._store.delete(self._key(user_id))
        log.debug("password_change_code_revoked", user_id=user_id)
