"""
Admin catalog router: categories (and the station they route to) and menu items.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kds_shared.config.constants import MANAGEMENT_ROLES
from kds_shared.infrastructure.db import get_db
from kds_shared.security.auth import current_user_context, require_roles
from kds_shared.utils.kitchen_schemas import (
    CategoryCreate,
    CategoryOutput,
    CategoryStationUpdate,
    MenuItemCreate,
    MenuItemOutput,
)
from kds_api.services.domain import CatalogService

router = APIRouter(prefix="/api/admin", tags=["admin-catalog"])


@router.get("/categories", response_model=list[CategoryOutput])
def list_categories(
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[CategoryOutput]:
    require_roles(ctx, MANAGEMENT_ROLES)
    return CatalogService(db).list_categories()


@router.post("/categories", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CategoryOutput:
    require_roles(ctx, MANAGEMENT_ROLES)
    return CatalogService(db).create_category(body)


@router.patch("/categories/{category_id}/station", response_model=CategoryOutput)
def update_category_station(
    category_id: int,
    body: CategoryStationUpdate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> CategoryOutput:
    """Route a category to another station. Existing tickets are not moved."""
    require_roles(ctx, MANAGEMENT_ROLES)
    return CatalogService(db).set_category_station(category_id, body.station)


@router.post("/menu-items", response_model=MenuItemOutput, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    body: MenuItemCreate,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> MenuItemOutput:
    require_roles(ctx, MANAGEMENT_ROLES)
    return CatalogService(db).create_menu_item(body)
