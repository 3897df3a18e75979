"""
Event bus: Redis pub/sub publishing for station displays and order views.
"""

from .event_types import (
    TICKETS_CREATED,
    TICKET_STATUS_CHANGED,
    TICKET_ITEM_UPDATED,
    TICKET_PRIORITY_CHANGED,
    ORDER_STATUS_CHANGED,
    ALL_EVENT_TYPES,
    MAX_EVENT_SIZE,
)
from .event_schema import Event
from .channels import channel_station, channel_order
from .circuit_breaker import (
    CircuitState,
    EventCircuitBreaker,
    get_event_circuit_breaker,
    publish_retry_delay,
)
from .redis_pool import get_redis_pool, close_redis_pool, check_redis_health
from .publisher import encode_event, publish_event
from .routing import publish_ticket_event, publish_order_event

__all__ = [
    "TICKETS_CREATED",
    "TICKET_STATUS_CHANGED",
    "TICKET_ITEM_UPDATED",
    "TICKET_PRIORITY_CHANGED",
    "ORDER_STATUS_CHANGED",
    "ALL_EVENT_TYPES",
    "MAX_EVENT_SIZE",
    "Event",
    "channel_station",
    "channel_order",
    "CircuitState",
    "EventCircuitBreaker",
    "get_event_circuit_breaker",
    "publish_retry_delay",
    "get_redis_pool",
    "close_redis_pool",
    "check_redis_health",
    "encode_event",
    "publish_event",
    "publish_ticket_event",
    "publish_order_event",
]
