"""
Station ticket router.
Feed reads and status changes for the kitchen and bar displays.
Thin router delegating to TicketService.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kds_shared.config.constants import KITCHEN_STAFF_ROLES, MANAGEMENT_ROLES
from kds_shared.config.settings import settings
from kds_shared.infrastructure.db import get_db
from kds_shared.security.auth import current_user_context, require_roles
from kds_shared.security.rate_limit import limiter
from kds_shared.utils.kitchen_schemas import (
    KitchenTicketFeed,
    KitchenTicketOutput,
    RecallTicketRequest,
    TransitionTicketRequest,
    UpdateTicketItemStatusRequest,
    UpdateTicketPriorityRequest,
)
from kds_api.services.domain import TicketService

router = APIRouter(prefix="/api/kds", tags=["kds-tickets"])


def _get_service(db: Session) -> TicketService:
    return TicketService(db)


@router.get("/tickets", response_model=KitchenTicketFeed)
@limiter.limit(settings.feed_rate_limit)
def list_station_tickets(
    request: Request,
    station: str,
    status_in: list[str] | None = Query(default=None),
    updated_after: datetime | None = None,
    limit: int = Query(default=settings.kds_default_feed_limit, ge=1, le=settings.kds_max_feed_limit),
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketFeed:
    """
    Ticket feed for one station, rush first then oldest first.
    Pass ``updated_after`` (the newest ``updated_at`` seen) for a delta poll.
    """
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return _get_service(db).list_feed(
        station=station,
        statuses=status_in,
        updated_after=updated_after,
        limit=limit,
    )


@router.get("/tickets/{ticket_id}", response_model=KitchenTicketOutput)
def get_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return _get_service(db).get_ticket(ticket_id)


@router.post("/tickets/{ticket_id}/transition", response_model=KitchenTicketOutput)
async def transition_ticket(
    ticket_id: int,
    body: TransitionTicketRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    """
    Move the ticket to ``status`` if it is still ``expected_status``.
    409 with ``current_status`` when another operator got there first.
    """
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return await _get_service(db).transition(
        ticket_id, body.status, body.expected_status, ctx
    )


@router.post("/tickets/{ticket_id}/bump", response_model=KitchenTicketOutput)
async def bump_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    """NEW → IN_PROGRESS → COMPLETED; RECALLED → IN_PROGRESS."""
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return await _get_service(db).bump(ticket_id, ctx)


@router.post("/tickets/{ticket_id}/recall", response_model=KitchenTicketOutput)
async def recall_ticket(
    ticket_id: int,
    body: RecallTicketRequest | None = None,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    body = body or RecallTicketRequest()
    return await _get_service(db).recall(ticket_id, body.expected_status, ctx)


@router.patch("/tickets/{ticket_id}/priority", response_model=KitchenTicketOutput)
async def set_ticket_priority(
    ticket_id: int,
    body: UpdateTicketPriorityRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    """Rush a ticket. Requires MANAGER or ADMIN."""
    require_roles(ctx, MANAGEMENT_ROLES)
    return await _get_service(db).set_priority(ticket_id, body.priority, ctx)


@router.patch("/ticket-items/{item_id}/status", response_model=KitchenTicketOutput)
async def update_ticket_item_status(
    item_id: int,
    body: UpdateTicketItemStatusRequest,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> KitchenTicketOutput:
    """Mark one item; the ticket completes once every remaining item is DONE."""
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return await _get_service(db).update_item_status(item_id, body.status, ctx)
