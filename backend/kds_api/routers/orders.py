"""
Order router: placement, lookup, station tickets and the dots indicator.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from kds_shared.config.constants import KITCHEN_STAFF_ROLES, ORDER_ROLES
from kds_shared.infrastructure.db import get_db
from kds_shared.security.auth import current_user_context, require_roles
from kds_shared.utils.kitchen_schemas import (
    CreateOrderRequest,
    FanoutResultOutput,
    KitchenTicketOutput,
    OrderOutput,
    TicketDotsResponse,
)
from kds_api.services.domain import OrderService, TicketService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
async def place_order(
    body: CreateOrderRequest,
    response: Response,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    """
    Place an order and fan it out to its stations.
    Re-posting an existing ``order_number`` returns that order with 200.
    """
    require_roles(ctx, ORDER_ROLES)
    order, created = await OrderService(db).place_order(body, ctx)
    if not created:
        response.status_code = status.HTTP_200_OK
    return order


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> OrderOutput:
    require_roles(ctx, ORDER_ROLES)
    return OrderService(db).get_order(order_id)


@router.get("/{order_id}/tickets", response_model=list[KitchenTicketOutput])
def list_order_tickets(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> list[KitchenTicketOutput]:
    require_roles(ctx, ORDER_ROLES)
    return TicketService(db).list_for_order(order_id)


@router.get("/{order_id}/ticket-dots", response_model=TicketDotsResponse)
def get_order_ticket_dots(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> TicketDotsResponse:
    """Kitchen and bar status dots for an order row; empty when not fanned out."""
    require_roles(ctx, ORDER_ROLES)
    return TicketService(db).get_dots(order_id)


@router.post("/{order_id}/fan-out", response_model=FanoutResultOutput)
async def fan_out_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: dict[str, Any] = Depends(current_user_context),
) -> FanoutResultOutput:
    """Create any missing station tickets. Safe to repeat."""
    require_roles(ctx, KITCHEN_STAFF_ROLES)
    return await OrderService(db).fan_out(order_id, ctx)
