"""
Caller identity for HTTP requests.

The core only sees the resolved ``(user_id, is_admin, token)`` triple.

User id:
    1. ``for_user`` query parameter, when the caller is an admin
    2. ``X-UserId`` header
    3. ``sub`` claim of the bearer token in ``Authorization``

Admin role:
    1. ``X-User-Roles`` header (comma separated) containing ``admin``
    2. ``realm_access.roles`` claim of the bearer token
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from analytics_pipeline.auth import ADMIN_ROLE, TokenClaims
from analytics_pipeline.errors import ValidationError

logger = logging.getLogger(__name__)

HEADER_USER_ID = "X-UserId"
HEADER_USER_ROLES = "X-User-Roles"
HEADER_AUTHORIZATION = "Authorization"


@dataclass(frozen=True, slots=True)
class Caller:
    """The authenticated caller of a request."""

    user_id: str
    is_admin: bool
    token: str


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")


def _header_roles(request: Request) -> list[str] | None:
    header = request.headers.get(HEADER_USER_ROLES)
    if not header:
        return None
    return [role.strip() for role in header.split(",")]


def _claims(token: str) -> TokenClaims:
    try:
        return TokenClaims.parse(token)
    except ValidationError as e:
        logger.error(f"[identity] Could not read token: {e}")
        raise _unauthorized() from e


def _is_admin(request: Request, token: str) -> bool:
    roles = _header_roles(request)
    if roles is not None:
        return ADMIN_ROLE in roles
    if token:
        return _claims(token).is_admin
    return False


def resolve_caller(request: Request) -> Caller:
    """FastAPI dependency: identify the caller or answer 401."""
    token = request.headers.get(HEADER_AUTHORIZATION, "")
    is_admin = _is_admin(request, token)

    for_user = request.query_params.get("for_user")
    if for_user and is_admin:
        return Caller(user_id=for_user, is_admin=True, token=token)

    user_id = request.headers.get(HEADER_USER_ID, "")
    if not user_id and token:
        user_id = _claims(token).sub

    if not user_id:
        logger.error("[identity] Missing authorization and X-UserId header")
        raise _unauthorized()

    return Caller(user_id=user_id, is_admin=is_admin, token=token)


def require_admin(request: Request) -> Caller:
    """FastAPI dependency: like resolve_caller, but only admins pass."""
    caller = resolve_caller(request)
    if not caller.is_admin:
        logger.warning("[identity] Non-admin user tries to access admin api")
        raise _unauthorized()
    return caller
