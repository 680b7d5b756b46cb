"""
Input validators — framework-agnostic, pure functions.

Used by the request DTOs; each returns a bool so the caller decides how
to report the failure.
"""

from __future__ import annotations

import re

_E164_RE = re.compile(r"^\+[1-9]\d{1,14}$")
_CODE_RE = re.compile(r"^\d{6}$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


def validate_mobile_number(mobile_number: str) -> bool:
    """Return True if *mobile_number* is in E.164 format (e.g. ``+15555551234``)."""
    return bool(_E164_RE.match(mobile_number))


def validate_verification_code(code: str) -> bool:
    """Return True if *code* is exactly six decimal digits."""
    return bool(_CODE_RE.match(code))


def validate_password(password: str) -> bool:
    """Validate an account password.

    Rules:
    - Between 8 and 128 characters
    - At least one lowercase letter
    - At least one uppercase letter
    - At least one digit

    Returns:
        True if the password meets all requirements.
    """
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        return False
    if not re.search(r"[a-z]", password):
        return False
    if not re.search(r"[A-Z]", password):
        return False
    if not re.search(r"\d", password):
        return False
    return True


def validate_name(name: str) -> bool:
    """Return True if *name* is 2–100 characters after trimming whitespace."""
    return 2 <= len(name.strip()) <= 100
