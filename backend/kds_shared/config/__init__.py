"""
Configuration module: Settings, logging, constants.
"""

from kds_shared.config.settings import settings, get_settings, DATABASE_URL
from kds_shared.config.logging import get_logger, setup_logging
from kds_shared.config.constants import (
    Roles,
    DisplayStation,
    TicketStatus,
    TicketItemStatus,
    OrderStatus,
    Limits,
    MANAGEMENT_ROLES,
    KITCHEN_STAFF_ROLES,
    can_transition,
    is_terminal,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "Roles",
    "DisplayStation",
    "TicketStatus",
    "TicketItemStatus",
    "OrderStatus",
    "Limits",
    "MANAGEMENT_ROLES",
    "KITCHEN_STAFF_ROLES",
    "can_transition",
    "is_terminal",
]
