"""
Token issuance and validation.

Signed tokens (PyJWT):
  access   — short-lived bearer credential, carries email and role
  refresh  — long-lived, ``type=refresh``, delivered via HTTP-only cookie
RS256 is used when a key pair is configured, otherwise HS256 with JWT_SECRET.

Opaque tokens (code store):
  pending-2fa       — issued after the password check, consumed by 2FA success
  pwd-change-token  — issued with a password-change code, consumed by the change
Only SHA-256(token) is stored, mapped to the user id with a short TTL.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt

from config import JWTSettings
from errors import InvalidTokenError, MisconfiguredServiceError
from infrastructure.cache.code_store import CodeStore
from schemas.models.user import UserDoc
from shared.crypto import hash_token
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

PENDING_TOKEN_TTL_SECONDS = 300

# Authentication Methods References (RFC 8176): password plus SMS code
AUTH_METHODS = ["pwd", "sms", "mfa"]


class TokenPurpose(str, Enum):
    PENDING_TWO_FACTOR = "pending-2fa"
    PASSWORD_CHANGE = "pwd-change-token"


class TokenService:
    def __init__(
        self,
        settings: JWTSettings,
        store: CodeStore,
        pending_ttl_seconds: int = PENDING_TOKEN_TTL_SECONDS,
    ) -> None:
        self._settings = settings
        self._store = store
        self.pending_ttl_seconds = pending_ttl_seconds

    # ── Signed tokens ────────────────────────────────────────────────────────

    @property
    def _algorithm(self) -> str:
        return "RS256" if self._settings.use_rs256 else "HS256"

    def _keys(self) -> tuple[Any, Any]:
        if self._settings.use_rs256:
            # Support keys provided via env with literal \n sequences
            priv = self._settings.jwt_private_key.replace("\\n", "\n").encode("utf-8")
            pub = self._settings.jwt_public_key.replace("\\n", "\n").encode("utf-8")
            return priv, pub
        if not self._settings.jwt_secret:
            raise MisconfiguredServiceError(
                "JWT_SECRET must be set when RS256 keys are not provided"
            )
        return self._settings.jwt_secret, self._settings.jwt_secret

    def _encode(self, subject: str, ttl_seconds: int, token_type: str, **extra: Any) -> str:
        private_key, _ = self._keys()
        now = datetime.now(timezone.utc)
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            "type": token_type,
            "amr": AUTH_METHODS,
            **extra,
        }
        return jwt.encode(claims, private_key, algorithm=self._algorithm)

    def _decode(self, token: str, expected_type: str) -> dict:
        _, public_key = self._keys()
        try:
            claims = jwt.decode(
                token,
                public_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

        if claims.get("type") != expected_type or not claims.get("sub"):
            raise InvalidTokenError("Invalid token")
        return claims

    def issue_access_token(self, user: UserDoc) -> str:
        return self._encode(
            user.user_id,
            self._settings.access_token_ttl_seconds,
            "access",
            email=user.email,
            role=user.role,
        )

    def issue_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, self._settings.refresh_token_ttl_seconds, "refresh")

    def decode_access_token(self, token: str) -> dict:
        return self._decode(token, "access")

    def decode_refresh_token(self, token: str) -> dict:
        return self._decode(token, "refresh")

    # ── Opaque correlation tokens ────────────────────────────────────────────

    @staticmethod
    def _pending_key(token: str, purpose: TokenPurpose) -> str:
        return f"{purpose.value}:{hash_token(token)}"

    async def issue_pending_token(self, user_id: str, purpose: TokenPurpose) -> str:
        token = generate_secure_token()
        await self._store.put(
            self._pending_key(token, purpose), user_id, self.pending_ttl_seconds
        )
        log.debug("pending_token_issued", user_id=user_id, purpose=purpose.value)
        return token

    async def resolve_pending_token(self, token: str, purpose: TokenPurpose) -> str:
        """Return the user id bound to *token*.

        Raises:
            InvalidTokenError: unknown, expired or already consumed token.
        """
        if not token:
            raise InvalidTokenError("Invalid or expired token")
        user_id = await self._store.get(self._pending_key(token, purpose))
        if user_id is None:
            raise InvalidTokenError("Invalid or expired token")
        return user_id

    async def revoke_pending_token(self, token: str, purpose: TokenPurpose) -> None:
        await self._store.delete(self._pending_key(token, purpose))
