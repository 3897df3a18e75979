"""
Kitchen Models: KitchenTicket, KitchenTicketItem.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from kds_shared.config.constants import TicketItemStatus, TicketStatus
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .order import Order, OrderItem


class KitchenTicket(TimestampMixin, Base):
    """
    The slice of an order one station prepares.

    At most one ticket per (order, station); the station is fixed at creation.
    Status changes go through the compare-and-set update in the ticket
    repository, never through plain attribute assignment.
    """

    __tablename__ = "kitchen_ticket"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("customer_order.id"), nullable=False, index=True
    )
    station: Mapped[str] = mapped_column(Text, nullable=False)  # KITCHEN, BAR
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=TicketStatus.NEW
    )  # NEW, IN_PROGRESS, COMPLETED, RECALLED, CANCELLED
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # >0 = rush

    order: Mapped["Order"] = relationship(back_populates="tickets")
    items: Mapped[list["KitchenTicketItem"]] = relationship(
        back_populates="ticket", order_by="KitchenTicketItem.id"
    )

    __table_args__ = (
        UniqueConstraint("order_id", "station", name="uq_kitchen_ticket_order_station"),
        # Station feed: WHERE station=? ORDER BY priority DESC, created_at
        Index("ix_kitchen_ticket_station_status", "station", "status"),
        Index("ix_kitchen_ticket_station_updated", "station", "updated_at"),
    )

    @validates("station")
    def _validate_station(self, key: str, value: str) -> str:
        current = self.__dict__.get("station")
        if current is not None and value != current:
            raise ValueError(
                f"KitchenTicket station is immutable ({current} -> {value})"
            )
        return value


class KitchenTicketItem(Base):
    """Links an OrderItem to the ticket of its station, with its own progress."""

    __tablename__ = "kitchen_ticket_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("kitchen_ticket.id"), nullable=False, index=True
    )
    order_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("order_item.id"), index=True
    )
    menu_title: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    prepare: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=TicketItemStatus.PENDING
    )  # PENDING, IN_PROGRESS, DONE, CANCELLED

    ticket: Mapped["KitchenTicket"] = relationship(back_populates="items")
    order_item: Mapped[Optional["OrderItem"]] = relationship()
