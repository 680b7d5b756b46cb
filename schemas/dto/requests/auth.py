"""
Request DTOs for authentication endpoints.

RegisterRequest               — POST /auth/register
LoginRequest                  — POST /auth/login
VerifyTwoFactorRequest        — POST /auth/verify-2fa
RemainingAttemptsRequest      — POST /auth/2fa/attempts
UpdateProfileRequest          — PATCH /auth/me
ChangePasswordRequest         — POST /auth/change-password
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.validators import (
    validate_mobile_number,
    validate_name,
    validate_password,
    validate_verification_code,
)

_PASSWORD_RULES = (
    "Password must be 8-128 characters and contain at least one uppercase "
    "letter, one lowercase letter, and one number"
)


def _check_password(value: str) -> str:
    if not validate_password(value):
        raise ValueError(_PASSWORD_RULES)
    return value


def _check_code(value: str) -> str:
    if not validate_verification_code(value):
        raise ValueError("Verification code must be exactly 6 digits")
    return value


def _check_name(value: str) -> str:
    if not validate_name(value):
        raise ValueError("Name must be between 2 and 100 characters")
    return value


def _check_email(value: str) -> str:
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise ValueError("Email must be a valid email address")
    return value


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    mobile_number: str = Field(alias="mobileNumber")
    password: str

    check_name = field_validator("name")(_check_name)
    check_email = field_validator("email")(_check_email)
    check_password = field_validator("password")(_check_password)

    @field_validator("mobile_number")
    @classmethod
    def check_mobile(cls, value: str) -> str:
        if not validate_mobile_number(value):
            raise ValueError("Mobile number must be in E.164 format (e.g., +15555551234)")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(min_length=1)


class VerifyTwoFactorRequest(BaseModel):
    """Request body for POST /auth/verify-2fa.

    ``pending_2fa_token`` is the token returned by login; ``code`` is the
    6-digit code sent by SMS.
    """

    model_config = ConfigDict(populate_by_name=True)

    pending_2fa_token: str = Field(alias="pending2faToken", min_length=1)
    code: str

    check_code = field_validator("code")(_check_code)


class RemainingAttemptsRequest(BaseModel):
    """Request body for POST /auth/2fa/attempts."""

    model_config = ConfigDict(populate_by_name=True)

    pending_2fa_token: str = Field(alias="pending2faToken", min_length=1)


class UpdateProfileRequest(BaseModel):
    """Request body for PATCH /auth/me. Omitted fields are left unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_name(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_email(value)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/change-password."""

    model_config = ConfigDict(populate_by_name=True)

    password_change_token: str = Field(alias="passwordChangeToken", min_length=1)
    code: str
    new_password: str = Field(alias="newPassword")

    check_code = field_validator("code")(_check_code)
    check_new_password = field_validator("new_password")(_check_password)
