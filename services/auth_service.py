"""
Authentication orchestration.

Login is a two-step protocol:

    login(email, password)          Unauthenticated → PendingTwoFactor
        password check, 2FA code issued and sent by SMS, pending token returned
    verify_two_factor(token, code)  PendingTwoFactor → Authenticated
        code checked, pending token consumed, access + refresh tokens issued

Password change mirrors it: request_password_change() issues a code and a
password-change token; change_password() consumes both and re-hashes.

Delivery failures are never absorbed. When an SMS cannot be sent, the code
that was just issued is revoked (REVOKE_CODE_ON_SEND_FAILURE), no token is
handed out and TransportError propagates. With SMS_ENABLED=false delivery
is skipped with a warning; production settings refuse that mode.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from errors import (
    AttemptsExhaustedError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
)
from infrastructure.sms.protocol import SmsProvider
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.token_service import TokenPurpose, TokenService
from services.verification_service import (
    PasswordChangeVerifier,
    TwoFactorVerifier,
    VerificationOutcome,
)
from shared.crypto import hash_password, verify_password
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

# Checked against when the email is unknown so both failure paths pay for one
# argon2 verification
_DUMMY_PASSWORD_HASH = hash_password("dummy-password-for-timing-parity")


@dataclass
class AuthTokens:
    access_token: str
    refresh_token: str
    user: UserDoc


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        tokens: TokenService,
        two_factor: TwoFactorVerifier,
        password_change: PasswordChangeVerifier,
        sms: SmsProvider,
        revoke_code_on_send_failure: bool = True,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._two_factor = two_factor
        self._password_change = password_change
        self._sms = sms
        self._revoke_on_send_failure = revoke_code_on_send_failure

    async def _deliver(
        self,
        send: Callable[[str, str], Awaitable[Optional[str]]],
        revoke: Callable[[str], Awaitable[None]],
        user: UserDoc,
        code: str,
        purpose: str,
    ) -> None:
        if not self._sms.enabled:
            log.warning("sms_delivery_skipped", user_id=user.user_id, purpose=purpose)
            return
        try:
            await send(user.mobile_number, code)
        except Exception:
            if self._revoke_on_send_failure:
                await revoke(user.user_id)
            log.error(
                "verification_code_delivery_failed",
                user_id=user.user_id,
                purpose=purpose,
                code_revoked=self._revoke_on_send_failure,
            )
            raise

    # ── Registration ─────────────────────────────────────────────────────────

    async def register(
        self, name: str, email: str, mobile_number: str, password: str
    ) -> UserDoc:
        if await self._users.email_exists(email):
            raise ConflictError("Email already registered", field="email")
        if await self._users.mobile_exists(mobile_number):
            raise ConflictError("Mobile number already registered", field="mobile_number")

        user = await self._users.insert(
            UserDoc(
                name=name.strip(),
                email=email,
                mobile_number=mobile_number,
                password_hash=await asyncio.to_thread(hash_password, password),
            )
        )
        log.info("user_registered", user_id=user.user_id)
        return user

    # ── Login with second factor ─────────────────────────────────────────────

    async def login(self, email: str, password: str) -> str:
        """Check credentials, send a 2FA code and return a pending token."""
        user = await self._users.find_by_email(email)
        password_hash = user.password_hash if user is not None else _DUMMY_PASSWORD_HASH
        password_ok = await asyncio.to_thread(verify_password, password, password_hash)
        if user is None or not password_ok:
            log.warning("login_failed", reason="invalid_credentials")
            raise InvalidCredentialsError("Invalid email or password")

        code = generate_otp_code()
        await self._two_factor.issue(user.user_id, code)
        await self._deliver(
            self._sms.send_verification_code,
            self._two_factor.revoke,
            user,
            code,
            "two_factor",
        )

        pending_token = await self._tokens.issue_pending_token(
            user.user_id, TokenPurpose.PENDING_TWO_FACTOR
        )
        log.info("two_factor_code_issued", user_id=user.user_id)
        return pending_token

    async def verify_two_factor(self, pending_token: str, code: str) -> AuthTokens:
        user_id = await self._tokens.resolve_pending_token(
            pending_token, TokenPurpose.PENDING_TWO_FACTOR
        )

        outcome = await self._two_factor.check(user_id, code)
        if outcome is VerificationOutcome.EXHAUSTED:
            # The code is burned; the pending token can never succeed now
            await self._tokens.revoke_pending_token(
                pending_token, TokenPurpose.PENDING_TWO_FACTOR
            )
            raise AttemptsExhaustedError(
                "Too many failed attempts. Please log in again.",
                details={"remaining_attempts": 0},
            )
        if outcome is not VerificationOutcome.VERIFIED:
            log.info("two_factor_verification_failed", user_id=user_id, outcome=outcome.value)
            raise InvalidCodeError("Invalid or expired verification code")

        await self._tokens.revoke_pending_token(
            pending_token, TokenPurpose.PENDING_TWO_FACTOR
        )
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise InvalidTokenError("Invalid or expired token")

        log.info("login_succeeded", user_id=user_id)
        return self._issue_tokens(user)

    async def remaining_attempts(self, pending_token: str) -> int:
        user_id = await self._tokens.resolve_pending_token(
            pending_token, TokenPurpose.PENDING_TWO_FACTOR
        )
        return await self._two_factor.remaining_attempts(user_id)

    def _issue_tokens(self, user: UserDoc) -> AuthTokens:
        return AuthTokens(
            access_token=self._tokens.issue_access_token(user),
            refresh_token=self._tokens.issue_refresh_token(user.user_id),
            user=user,
        )

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a rotated access/refresh pair."""
        if not refresh_token:
            raise InvalidTokenError("Missing refresh token")
        claims = self._tokens.decode_refresh_token(refresh_token)
        user = await self._users.find_by_id(claims["sub"])
        if user is None:
            raise InvalidTokenError("Invalid or expired token")
        return self._issue_tokens(user)

    # ── Profile ──────────────────────────────────────────────────────────────

    async def get_profile(self, user_id: str) -> UserDoc:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(
        self, user_id: str, name: Optional[str] = None, email: Optional[str] = None
    ) -> UserDoc:
        current = await self.get_profile(user_id)
        fields: dict = {}
        if name is not None:
            fields["name"] = name.strip()
        if email is not None and email.lower() != current.email:
            if await self._users.email_exists(email):
                raise ConflictError("Email already registered", field="email")
            fields["email"] = email
        if not fields:
            return current

        user = await self._users.update_profile(user_id, fields)
        if user is None:
            raise NotFoundError("User not found")
        log.info("profile_updated", user_id=user_id, fields=sorted(fields))
        return user

    # ── Password change with second factor ───────────────────────────────────

    async def request_password_change(self, user_id: str) -> str:
        """Send a password-change code and return the password-change token."""
        user = await self.get_profile(user_id)

        code = generate_otp_code()
        await self._password_change.issue(user.user_id, code)
        await self._deliver(
            self._sms.send_password_change_code,
            self._password_change.revoke,
            user,
            code,
            "password_change",
        )

        token = await self._tokens.issue_pending_token(
            user.user_id, TokenPurpose.PASSWORD_CHANGE
        )
        log.info("password_change_code_issued", user_id=user.user_id)
        return token

    async def change_password(
        self, password_change_token: str, code: str, new_password: str
    ) -> None:
        user_id = await self._tokens.resolve_pending_token(
            password_change_token, TokenPurpose.PASSWORD_CHANGE
        )
        if not await self._password_change.verify(user_id, code):
            log.info("password_change_verification_failed", user_id=user_id)
            raise InvalidCodeError("Invalid or expired verification code")

        await self._tokens.revoke_pending_token(
            password_change_token, TokenPurpose.PASSWORD_CHANGE
        )
        new_hash = await asyncio.to_thread(hash_password, new_password)
        if not await self._users.update_password(user_id, new_hash):
            raise NotFoundError("User not found")
        log.info("password_changed", user_id=user_id)
