"""
Domain services: business logic behind the routers.
"""

from .reconciliation import derive_order_status, OrderReconciler, ReconcileResult
from .ticket_service import TicketService
from .fanout_service import FanoutService, FanoutResult, group_items_by_station
from .order_service import OrderService
from .catalog_service import CatalogService

__all__ = [
    "derive_order_status",
    "OrderReconciler",
    "ReconcileResult",
    "TicketService",
    "FanoutService",
    "FanoutResult",
    "group_items_by_station",
    "OrderService",
    "CatalogService",
]
