"""
Catalog service: categories (with their station) and menu items.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from kds_shared.config.logging import get_logger
from kds_shared.utils.exceptions import DuplicateEntityError, NotFoundError
from kds_shared.utils.kitchen_schemas import (
    CategoryCreate,
    CategoryOutput,
    MenuItemCreate,
    MenuItemOutput,
)
from kds_api.models import Category, MenuItem
from kds_api.repositories import CategoryRepository, MenuItemRepository
from kds_api.services.base_service import BaseService

logger = get_logger(__name__)


class CatalogService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._categories = CategoryRepository(db)
        self._items = MenuItemRepository(db)

    def list_categories(self) -> list[CategoryOutput]:
        return [CategoryOutput.model_validate(c) for c in self._categories.find_all()]

    def create_category(self, body: CategoryCreate) -> CategoryOutput:
        if self._categories.find_by_name(body.name) is not None:
            raise DuplicateEntityError("Category", body.name)
        category = self._categories.add(
            Category(name=body.name, description=body.description, station=body.station)
        )
        self._commit("create category", name=body.name)
        logger.info("Category created", category_id=category.id, station=category.station)
        return CategoryOutput.model_validate(category)

    def set_category_station(self, category_id: int, station: str) -> CategoryOutput:
        """
        Re-route a category. Affects orders fanned out from now on; existing
        tickets keep their station.
        """
        category = self._categories.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        previous = category.station
        category.station = station
        self._commit("update category station", category_id=category_id)
        logger.info(
            "Category station changed",
            category_id=category_id,
            from_station=previous,
            to_station=station,
        )
        return CategoryOutput.model_validate(category)

    def create_menu_item(self, body: MenuItemCreate) -> MenuItemOutput:
        if not self._categories.exists(body.category_id):
            raise NotFoundError("Category", body.category_id)
        item = self._items.add(
            MenuItem(
                category_id=body.category_id,
                title=body.title,
                price_cents=body.price_cents,
                is_available=body.is_available,
            )
        )
        self._commit("create menu item", title=body.title)
        return MenuItemOutput.model_validate(item)
