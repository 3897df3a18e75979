"""
Event Routing Helpers.

Ticket events go to the ticket's station channel and to the order channel;
order events go to the order channel only. Publishing is best-effort: a
failure is logged and never propagates into the write that triggered it.
"""

from __future__ import annotations

from typing import Any

from kds_shared.config.settings import settings
from kds_shared.config.logging import get_logger
from .channels import channel_order, channel_station
from .event_schema import Event
from .publisher import publish_event
from .redis_pool import get_redis_pool

logger = get_logger(__name__)


def _actor(user_id: int | None, role: str | None) -> dict[str, Any]:
    return {"user_id": user_id, "role": role} if user_id is not None else {}


async def _publish_to(channels: list[str], event: Event) -> int:
    if not settings.events_enabled:
        return 0
    delivered = 0
    try:
        redis_client = await get_redis_pool()
        for channel in channels:
            delivered += await publish_event(redis_client, channel, event)
    except Exception as e:
        logger.error(
            "Event publish failed",
            event_type=event.type,
            order_id=event.order_id,
            station=event.station,
            error=str(e),
        )
    return delivered


async def publish_ticket_event(
    event_type: str,
    order_id: int,
    station: str,
    entity: dict[str, Any],
    actor_user_id: int | None = None,
    actor_role: str | None = None,
) -> int:
    """Publish a ticket-level event to its station and order channels."""
    event = Event(
        type=event_type,
        order_id=order_id,
        station=station,
        entity=entity,
        actor=_actor(actor_user_id, actor_role),
    )
    return await _publish_to([channel_station(station), channel_order(order_id)], event)


async def publish_order_event(
    event_type: str,
    order_id: int,
    entity: dict[str, Any],
    actor_user_id: int | None = None,
    actor_role: str | None = None,
) -> int:
    """Publish an order-level event to the order channel."""
    event = Event(
        type=event_type,
        order_id=order_id,
        entity=entity,
        actor=_actor(actor_user_id, actor_role),
    )
    return await _publish_to([channel_order(order_id)], event)
