"""
Event Services - real-time notifications for station displays and order views.
"""

from .kitchen_events import (
    publish_tickets_created,
    publish_ticket_status_changed,
    publish_ticket_item_updated,
    publish_ticket_priority_changed,
    publish_order_status_changed,
)

__all__ = [
    "publish_tickets_created",
    "publish_ticket_status_changed",
    "publish_ticket_item_updated",
    "publish_ticket_priority_changed",
    "publish_order_status_changed",
]
