"""
Random code and token generators — pure, side-effect-free functions.

Every generator here draws from the ``secrets`` module. A predictable
verification code or correlation token defeats the second factor, so the
``random`` module must never be used in this file.
"""

from __future__ import annotations

import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric verification code.

    Returns:
        Decimal string drawn uniformly from [100000, 999999].
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure opaque token.

    Used for pending-2FA and password-change correlation tokens.

    Args:
        length: Number of random bytes (default 32).

    Returns:
        Hex-encoded token, ``2 * length`` characters long.
    """
    return secrets.token_hex(length)
