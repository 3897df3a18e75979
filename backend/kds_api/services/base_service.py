"""
Base Service Class.

Architecture:
    Router (thin) → Service (business logic) → Repository (data access) → Model

Services own the transaction: repositories only flush, services commit.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kds_shared.config.logging import get_logger
from kds_shared.infrastructure.db import safe_commit
from kds_shared.utils.exceptions import DatabaseError

logger = get_logger(__name__)


class BaseService:
    """Common infrastructure for domain services."""

    def __init__(self, db: Session):
        self._db = db

    @property
    def db(self) -> Session:
        return self._db

    def _commit(self, operation: str, **log_context) -> None:
        """Commit the open transaction; database failures surface as a 500."""
        try:
            safe_commit(self._db)
        except SQLAlchemyError as e:
            raise DatabaseError(operation, error=str(e), **log_context) from e
