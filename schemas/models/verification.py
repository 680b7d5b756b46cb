"""
Verification code records held in the code store.

2FA codes are stored as JSON ``{"code": ..., "attempts": ...}`` under
``2fa:<user_id>``. Password-change codes are stored as the bare code string
under ``pwd-change:<user_id>`` and have no model.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class TwoFactorRecord(BaseModel):
    code: str
    attempts: int = Field(default=0, ge=0)
