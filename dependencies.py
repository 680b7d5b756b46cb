"""
FastAPI dependency providers.

Process-scoped resources are created once in the app lifespan and stored on
app.state; these providers hand them to route handlers via Depends().
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from errors import AuthenticationError
from services.auth_service import AuthService
from services.token_service import TokenService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_current_user_id(request: Request) -> str:
    """Return the user id placed on request.state by the route policy check."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationError("Missing access token")
    return user_id
