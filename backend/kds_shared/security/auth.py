"""
JWT verification and role checks for station staff.

Tokens are issued by the auth service; this module verifies them (HS256 with
issuer and audience) and exposes the FastAPI dependency used by every
protected router. ``sign_jwt`` exists for tooling and tests.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Header, HTTPException, status

from kds_shared.config.settings import (
    settings,
    JWT_SECRET,
    JWT_ISSUER,
    JWT_AUDIENCE,
)
from kds_shared.config.logging import get_logger

logger = get_logger(__name__)


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign an access token with the given payload.

    Args:
        payload: Claims to include (sub, roles, email, ...).
        ttl_seconds: Token lifetime in seconds. Defaults to the access token expiry.

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": "access",
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or lacks claims.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT validation failed", error=str(e))
        raise _unauthorized("Invalid token")

    if "sub" not in payload:
        raise _unauthorized("Invalid token: missing subject claim")

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise _unauthorized("Invalid token: malformed subject claim")

    if payload.get("type") not in ("access", None):
        raise _unauthorized("Invalid token: invalid type claim")

    if not isinstance(payload.get("roles", []), list):
        raise _unauthorized("Invalid token: malformed roles claim")

    return payload


def get_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise _unauthorized("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid Authorization header format. Expected: Bearer <token>")
    return authorization.split(" ", 1)[1].strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency returning the verified token claims.

    Usage:
        @router.get("/tickets")
        def list_tickets(ctx: dict = Depends(current_user_context)):
            user_id = int(ctx["sub"])
            ...
    """
    token = get_bearer_token(authorization)
    return verify_jwt(token)


def require_roles(ctx: dict[str, Any], allowed: list[str] | frozenset[str]) -> None:
    """
    Verify that the user has at least one of the allowed roles.

    Raises:
        HTTPException: 403 if the user lacks every allowed role.
    """
    user_roles = set(ctx.get("roles", []))
    if not user_roles.intersection(allowed):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required role: one of {sorted(allowed)}",
        )


def actor_from_context(ctx: dict[str, Any]) -> tuple[int, str | None]:
    """Return (user_id, primary role) for event and log attribution."""
    roles = ctx.get("roles") or []
    return int(ctx["sub"]), (roles[0] if roles else None)
