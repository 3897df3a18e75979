"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin
- catalog: Category, MenuItem
- order: Order, OrderItem
- kitchen: KitchenTicket, KitchenTicketItem
"""

from .base import Base, TimestampMixin, utcnow
from .catalog import Category, MenuItem
from .order import Order, OrderItem
from .kitchen import KitchenTicket, KitchenTicketItem

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Category",
    "MenuItem",
    "Order",
    "OrderItem",
    "KitchenTicket",
    "KitchenTicketItem",
]
