"""
Order Models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kds_shared.config.constants import OrderStatus, OrderType
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .catalog import MenuItem
    from .kitchen import KitchenTicket


class Order(TimestampMixin, Base):
    """
    A customer order. Fans out into one KitchenTicket per required station;
    while the order is PENDING, PREPARING or READY its status follows the
    tickets.
    """

    __tablename__ = "customer_order"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=OrderStatus.PENDING, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(Text)
    user_email: Mapped[Optional[str]] = mapped_column(Text)
    table_number: Mapped[Optional[int]] = mapped_column(Integer)
    delivery_address: Mapped[Optional[str]] = mapped_column(Text)
    note: Mapped[Optional[str]] = mapped_column(Text)
    special_notes: Mapped[Optional[str]] = mapped_column(Text)
    order_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id"
    )
    tickets: Mapped[list["KitchenTicket"]] = relationship(
        back_populates="order", order_by="KitchenTicket.id"
    )

    @property
    def order_type(self) -> str:
        """DINE_IN with a table, DELIVERY with an address, otherwise TAKEAWAY."""
        if self.table_number is not None:
            return OrderType.DINE_IN
        if self.delivery_address and self.delivery_address.strip():
            return OrderType.DELIVERY
        return OrderType.TAKEAWAY


class OrderItem(Base):
    """
    A line of an order. Title, category name and price are copied from the
    menu at order time so later catalog edits do not rewrite history.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("customer_order.id"), nullable=False, index=True
    )
    menu_item_id: Mapped[Optional[int]] = mapped_column(ForeignKey("menu_item.id"))
    menu_title: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    prepare: Mapped[Optional[str]] = mapped_column(Text)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order: Mapped["Order"] = relationship(back_populates="items")
    menu_item: Mapped[Optional["MenuItem"]] = relationship()

    __table_args__ = (Index("ix_order_item_order_menu", "order_id", "menu_item_id"),)
