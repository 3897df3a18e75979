"""
Security module: JWT verification, role checks, rate limiting.
"""

from kds_shared.security.auth import (
    sign_jwt,
    verify_jwt,
    get_bearer_token,
    current_user_context,
    require_roles,
    actor_from_context,
)
from kds_shared.security.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "sign_jwt",
    "verify_jwt",
    "get_bearer_token",
    "current_user_context",
    "require_roles",
    "actor_from_context",
    "limiter",
    "rate_limit_exceeded_handler",
]
