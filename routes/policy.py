"""
Per-route access policy.

ROUTE_POLICIES maps each endpoint function name to the credential it needs.
enforce_route_policy is attached once at router level; an endpoint missing
from the table is refused, so a new route has to be listed before it is
reachable.
"""

from __future__ import annotations

from enum import Enum

from fastapi import Request

from dependencies import get_token_service
from errors import AuthenticationError, ForbiddenError
from shared.logging import get_logger

log = get_logger(__name__)


class RoutePolicy(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


ROUTE_POLICIES: dict[str, RoutePolicy] = {
    "register": RoutePolicy.PUBLIC,
    "login": RoutePolicy.PUBLIC,
    "verify_two_factor": RoutePolicy.PUBLIC,
    "remaining_attempts": RoutePolicy.PUBLIC,
    "refresh": RoutePolicy.PUBLIC,
    "logout": RoutePolicy.PUBLIC,
    "change_password": RoutePolicy.PUBLIC,
    "get_me": RoutePolicy.AUTHENTICATED,
    "update_me": RoutePolicy.AUTHENTICATED,
    "request_password_change": RoutePolicy.AUTHENTICATED,
}


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return ""


async def enforce_route_policy(request: Request) -> None:
    """Router dependency: look up the endpoint's policy and apply it.

    On AUTHENTICATED routes the access-token subject is placed on
    ``request.state.user_id``.
    """
    endpoint = request.scope.get("endpoint")
    name = getattr(endpoint, "__name__", "")
    policy = ROUTE_POLICIES.get(name)

    if policy is None:
        log.error("route_policy_missing", endpoint=name, path=request.url.path)
        raise ForbiddenError("Access denied")
    if policy is RoutePolicy.PUBLIC:
        return

    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("Missing access token")
    claims = get_token_service(request).decode_access_token(token)
    request.state.user_id = claims["sub"]
    request.state.jwt_claims = claims
