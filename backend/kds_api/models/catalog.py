"""
Catalog Models: Category, MenuItem.

The category decides which station prepares an item.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kds_shared.config.constants import DisplayStation
from .base import Base, BigIntPK, TimestampMixin


class Category(TimestampMixin, Base):
    """Menu category. ``station`` routes its items to the kitchen or the bar."""

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    station: Mapped[str] = mapped_column(
        Text, nullable=False, default=DisplayStation.DEFAULT
    )  # KITCHEN, BAR

    menu_items: Mapped[list["MenuItem"]] = relationship(back_populates="category")

    __table_args__ = (UniqueConstraint("name", name="uq_category_name"),)


class MenuItem(TimestampMixin, Base):
    __tablename__ = "menu_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("category.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    category: Mapped["Category"] = relationship(back_populates="menu_items")
