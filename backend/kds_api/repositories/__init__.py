"""
Repository layer: data access with eager loading.
"""

from .base import BaseRepository, RepositoryFilters
from .kitchen_ticket import KitchenTicketRepository, TicketFilters, as_utc
from .order import OrderRepository
from .catalog import CategoryRepository, MenuItemRepository

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "KitchenTicketRepository",
    "TicketFilters",
    "as_utc",
    "OrderRepository",
    "CategoryRepository",
    "MenuItemRepository",
]
