"""
Catalog Repositories - categories and menu items.
"""

from typing import Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import joinedload

from kds_api.models import Category, MenuItem
from .base import BaseRepository


class CategoryRepository(BaseRepository[Category]):

    @property
    def model(self) -> type[Category]:
        return Category

    def _base_query(self) -> Select:
        return select(Category).order_by(Category.name)

    def find_by_name(self, name: str) -> Category | None:
        return self._db.scalar(select(Category).where(Category.name == name))


class MenuItemRepository(BaseRepository[MenuItem]):

    @property
    def model(self) -> type[MenuItem]:
        return MenuItem

    def _base_query(self) -> Select:
        return select(MenuItem).options(joinedload(MenuItem.category))

    def find_available(self, item_ids: list[int]) -> Sequence[MenuItem]:
        if not item_ids:
            return []
        query = self._base_query().where(
            MenuItem.id.in_(item_ids),
            MenuItem.is_available.is_(True),
        )
        return self._db.execute(query).scalars().unique().all()
