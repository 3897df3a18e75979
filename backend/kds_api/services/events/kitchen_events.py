"""
Kitchen/bar event publishing.

Called after the transaction commits. Each helper delegates to the routing
layer, which swallows and logs Redis failures, so these never fail a write.
"""

from __future__ import annotations

from typing import Any

from kds_shared.infrastructure.events import (
    ORDER_STATUS_CHANGED,
    TICKET_ITEM_UPDATED,
    TICKET_PRIORITY_CHANGED,
    TICKET_STATUS_CHANGED,
    TICKETS_CREATED,
    publish_order_event,
    publish_ticket_event,
)
from kds_shared.security.auth import actor_from_context


def _actor(ctx: dict[str, Any] | None) -> tuple[int | None, str | None]:
    if not ctx or "sub" not in ctx:
        return None, None
    return actor_from_context(ctx)


async def publish_tickets_created(
    order_id: int,
    tickets: list[tuple[int, str]],
    ctx: dict[str, Any] | None = None,
) -> None:
    """One TICKETS_CREATED per new (ticket_id, station)."""
    user_id, role = _actor(ctx)
    for ticket_id, station in tickets:
        await publish_ticket_event(
            TICKETS_CREATED,
            order_id,
            station,
            {"ticket_id": ticket_id, "status": "NEW"},
            actor_user_id=user_id,
            actor_role=role,
        )


async def publish_ticket_status_changed(
    order_id: int,
    station: str,
    ticket_id: int,
    from_status: str,
    to_status: str,
    ctx: dict[str, Any] | None = None,
) -> None:
    user_id, role = _actor(ctx)
    await publish_ticket_event(
        TICKET_STATUS_CHANGED,
        order_id,
        station,
        {"ticket_id": ticket_id, "from_status": from_status, "to_status": to_status},
        actor_user_id=user_id,
        actor_role=role,
    )


async def publish_ticket_item_updated(
    order_id: int,
    station: str,
    ticket_id: int,
    item_id: int,
    status: str,
    ctx: dict[str, Any] | None = None,
) -> None:
    user_id, role = _actor(ctx)
    await publish_ticket_event(
        TICKET_ITEM_UPDATED,
        order_id,
        station,
        {"ticket_id": ticket_id, "item_id": item_id, "status": status},
        actor_user_id=user_id,
        actor_role=role,
    )


async def publish_ticket_priority_changed(
    order_id: int,
    station: str,
    ticket_id: int,
    priority: int,
    ctx: dict[str, Any] | None = None,
) -> None:
    user_id, role = _actor(ctx)
    await publish_ticket_event(
        TICKET_PRIORITY_CHANGED,
        order_id,
        station,
        {"ticket_id": ticket_id, "priority": priority},
        actor_user_id=user_id,
        actor_role=role,
    )


async def publish_order_status_changed(
    order_id: int,
    from_status: str | None,
    to_status: str | None,
    ctx: dict[str, Any] | None = None,
) -> None:
    user_id, role = _actor(ctx)
    await publish_order_event(
        ORDER_STATUS_CHANGED,
        order_id,
        {"from_status": from_status, "to_status": to_status},
        actor_user_id=user_id,
        actor_role=role,
    )
