"""
KitchenTicket → KitchenTicketOutput conversion.
"""

from __future__ import annotations

from kds_shared.utils.kitchen_schemas import KitchenTicketItemOutput, KitchenTicketOutput
from kds_api.models import KitchenTicket
from kds_api.repositories import as_utc


def build_ticket_output(
    ticket: KitchenTicket,
    sibling_status: str | None = None,
) -> KitchenTicketOutput:
    """Ticket plus the order context shown on a display card."""
    order = ticket.order
    return KitchenTicketOutput(
        id=ticket.id,
        order_id=ticket.order_id,
        station=ticket.station,
        status=ticket.status,
        priority=ticket.priority,
        created_at=as_utc(ticket.created_at),
        updated_at=as_utc(ticket.updated_at),
        order_number=order.order_number,
        order_status=order.status,
        order_type=order.order_type,
        table_number=order.table_number,
        user_name=order.user_name,
        note=order.note,
        special_notes=order.special_notes,
        order_date=as_utc(order.order_date) if order.order_date else None,
        items=[KitchenTicketItemOutput.model_validate(item) for item in ticket.items],
        sibling_ticket_status=sibling_status,
    )
