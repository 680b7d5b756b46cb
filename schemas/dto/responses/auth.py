"""
Response DTOs for authentication endpoints.

UserProfileResponse          — user summary; never carries the password hash
RegisterResponse             — POST /auth/register  (201)
LoginResponse                — POST /auth/login  (200)
VerifyTwoFactorResponse      — POST /auth/verify-2fa  (200)
RemainingAttemptsResponse    — POST /auth/2fa/attempts  (200)
RefreshResponse              — POST /auth/refresh  (200)
ProfileResponse              — GET/PATCH /auth/me  (200)
PasswordChangeTokenResponse  — POST /auth/request-password-change  (200)

The refresh token is never part of a body; it travels as an HTTP-only cookie.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    mobile_number: str = Field(serialization_alias="mobileNumber")
    role: str
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    @classmethod
    def from_user(cls, user: UserDoc) -> "UserProfileResponse":
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            mobile_number=user.mobile_number,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class RegisterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user: UserProfileResponse


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    pending_2fa_token: str = Field(serialization_alias="pending2faToken")


class VerifyTwoFactorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    access_token: str = Field(serialization_alias="accessToken")
    user: UserProfileResponse


class RemainingAttemptsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    remaining_attempts: int = Field(serialization_alias="remainingAttempts")


class RefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    access_token: str = Field(serialization_alias="accessToken")


class ProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserProfileResponse


class PasswordChangeTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    password_change_token: str = Field(serialization_alias="passwordChangeToken")
