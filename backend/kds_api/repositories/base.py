"""
Repository base: the queries every KDS entity repository shares.

Repositories flush but never commit; the calling service owns the
transaction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from sqlalchemy import Select, exists, select
from sqlalchemy.orm import Session

from kds_shared.config.constants import Limits

ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        self.limit = max(1, min(self.limit, Limits.MAX_PAGE_SIZE))
        self.offset = max(0, self.offset)


class BaseRepository(ABC, Generic[ModelT]):
    """Subclasses name their ``model`` and the eager-loading ``_base_query``."""

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        ...

    @abstractmethod
    def _base_query(self) -> Select:
        ...

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        return query

    def find_all(self, filters: RepositoryFilters | None = None) -> Sequence[ModelT]:
        filters = filters or RepositoryFilters()
        query = (
            self._apply_filters(self._base_query(), filters)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return self._db.execute(query).scalars().unique().all()

    def find_by_id(self, entity_id: int) -> ModelT | None:
        return self._db.scalar(self._base_query().where(self.model.id == entity_id))

    def exists(self, entity_id: int) -> bool:
        return bool(self._db.scalar(select(exists().where(self.model.id == entity_id))))

    def add(self, entity: ModelT) -> ModelT:
        """Add and flush so the new row has its id."""
        self._db.add(entity)
        self._db.flush()
        return entity
