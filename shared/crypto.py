"""
Cryptographic helpers — password hashing and token hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for token hashing.
"""

from __future__ import annotations

import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` on a mismatch or a
        malformed hash.
    """
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Pending-2FA and password-change tokens are stored under their hash so a
    dump of the code store never yields a usable token.

    Args:
        token: The plaintext token string to hash.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
