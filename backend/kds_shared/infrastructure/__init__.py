"""
Infrastructure module: database sessions, request correlation, event bus.
"""

from kds_shared.infrastructure.db import engine, SessionLocal, get_db, get_db_context, safe_commit
from kds_shared.infrastructure.correlation import (
    CorrelationIdMiddleware,
    RequestContext,
    RequestContextFilter,
    current_context,
    get_request_id,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "safe_commit",
    "CorrelationIdMiddleware",
    "RequestContext",
    "RequestContextFilter",
    "current_context",
    "get_request_id",
]
