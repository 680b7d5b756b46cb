"""
Authentication endpoints.

Handlers only translate between DTOs and AuthService; every protocol
decision lives in the service. Access control for each handler is listed
in routes.policy.ROUTE_POLICIES.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response

from config import AppSettings
from dependencies import get_auth_service, get_current_user_id, get_settings
from routes.policy import enforce_route_policy
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    RemainingAttemptsRequest,
    UpdateProfileRequest,
    VerifyTwoFactorRequest,
)
from schemas.dto.responses.auth import (
    LoginResponse,
    PasswordChangeTokenResponse,
    ProfileResponse,
    RefreshResponse,
    RegisterResponse,
    RemainingAttemptsResponse,
    UserProfileResponse,
    VerifyTwoFactorResponse,
)
from schemas.dto.responses.common import MessageResponse
from services.auth_service import AuthService

REFRESH_COOKIE = "refresh_token"

router = APIRouter(
    prefix="/auth", tags=["auth"], dependencies=[Depends(enforce_route_policy)]
)


def _set_refresh_cookie(response: Response, token: str, settings: AppSettings) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        value=token,
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite="lax",
        path="/auth",
        max_age=settings.jwt.refresh_token_ttl_seconds,
    )


@router.post("/register", status_code=201, response_model=RegisterResponse)
async def register(
    body: RegisterRequest, auth: AuthService = Depends(get_auth_service)
) -> RegisterResponse:
    user = await auth.register(body.name, body.email, body.mobile_number, body.password)
    return RegisterResponse(
        message="Registration successful", user=UserProfileResponse.from_user(user)
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    pending_token = await auth.login(body.email, body.password)
    return LoginResponse(
        message="Verification code sent to your mobile number",
        pending_2fa_token=pending_token,
    )


@router.post("/verify-2fa", response_model=VerifyTwoFactorResponse)
async def verify_two_factor(
    body: VerifyTwoFactorRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> VerifyTwoFactorResponse:
    result = await auth.verify_two_factor(body.pending_2fa_token, body.code)
    _set_refresh_cookie(response, result.refresh_token, settings)
    return VerifyTwoFactorResponse(
        message="Login successful",
        access_token=result.access_token,
        user=UserProfileResponse.from_user(result.user),
    )


@router.post("/2fa/attempts", response_model=RemainingAttemptsResponse)
async def remaining_attempts(
    body: RemainingAttemptsRequest, auth: AuthService = Depends(get_auth_service)
) -> RemainingAttemptsResponse:
    remaining = await auth.remaining_attempts(body.pending_2fa_token)
    return RemainingAttemptsResponse(remaining_attempts=remaining)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None),
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> RefreshResponse:
    result = await auth.refresh(refresh_token or "")
    _set_refresh_cookie(response, result.refresh_token, settings)
    return RefreshResponse(message="Token refreshed", access_token=result.access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response, settings: AppSettings = Depends(get_settings)
) -> MessageResponse:
    response.delete_cookie(
        REFRESH_COOKIE,
        path="/auth",
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite="lax",
    )
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    user_id: str = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    user = await auth.get_profile(user_id)
    return ProfileResponse(user=UserProfileResponse.from_user(user))


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    user = await auth.update_profile(user_id, name=body.name, email=body.email)
    return ProfileResponse(user=UserProfileResponse.from_user(user))


@router.post("/request-password-change", response_model=PasswordChangeTokenResponse)
async def request_password_change(
    user_id: str = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
) -> PasswordChangeTokenResponse:
    token = await auth.request_password_change(user_id)
    return PasswordChangeTokenResponse(
        message="Password change code sent to your mobile number",
        password_change_token=token,
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.change_password(body.password_change_token, body.code, body.new_password)
    return MessageResponse(message="Password changed successfully")
