"""
User document model.

Maps to the `users` MongoDB collection. Email and mobile number are both
unique (enforced by indexes created in UserRepository.ensure_indexes).
The mobile number receives the SMS verification codes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel

ROLE_USER = "USER"


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    name: str
    email: str
    mobile_number: str
    password_hash: str
    role: str = ROLE_USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def user_id(self) -> str:
        return str(self.id)
