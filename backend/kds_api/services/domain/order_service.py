"""
Order placement and lookup.

Placing an order copies title, category and price from the menu, then fans
the order out to its stations. ``order_number`` is the idempotency key: a
repeated placement returns the stored order unchanged.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kds_shared.config.constants import OrderStatus
from kds_shared.config.logging import orders_logger as logger, mask_email
from kds_shared.utils.exceptions import DatabaseError, OrderNotFoundError, ValidationError
from kds_shared.utils.kitchen_schemas import (
    CreateOrderRequest,
    FanoutResultOutput,
    OrderItemOutput,
    OrderOutput,
)
from kds_api.models import Order, OrderItem
from kds_api.repositories import KitchenTicketRepository, MenuItemRepository, OrderRepository, as_utc
from kds_api.services.base_service import BaseService
from kds_api.services.domain.fanout_service import FanoutService
from kds_api.services.domain.ticket_service import TicketService


class OrderService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._orders = OrderRepository(db)
        self._menu = MenuItemRepository(db)
        self._tickets = KitchenTicketRepository(db)

    def to_output(self, order: Order) -> OrderOutput:
        statuses = {t.station: t.status for t in self._tickets.find_by_order(order.id)}
        return OrderOutput(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            order_type=order.order_type,
            user_name=order.user_name,
            table_number=order.table_number,
            delivery_address=order.delivery_address,
            note=order.note,
            special_notes=order.special_notes,
            order_date=as_utc(order.order_date) if order.order_date else None,
            created_at=as_utc(order.created_at),
            items=[OrderItemOutput.model_validate(item) for item in order.items],
            ticket_statuses=statuses,
        )

    def get_order(self, order_id: int) -> OrderOutput:
        order = self._orders.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return self.to_output(order)

    def _insert_order(self, body: CreateOrderRequest) -> Order:
        wanted = {item.menu_item_id for item in body.items}
        menu = {m.id: m for m in self._menu.find_available(list(wanted))}
        missing = sorted(wanted - menu.keys())
        if missing:
            raise ValidationError(
                f"Menu items not found or unavailable: {missing}", menu_item_ids=missing
            )

        order = Order(
            order_number=body.order_number,
            status=OrderStatus.PENDING,
            user_name=body.user_name,
            user_email=body.user_email,
            table_number=body.table_number,
            delivery_address=body.delivery_address,
            note=body.note,
            special_notes=body.special_notes,
            order_date=body.order_date,
        )
        self._orders.add(order)
        for line in body.items:
            menu_item = menu[line.menu_item_id]
            self._db.add(
                OrderItem(
                    order_id=order.id,
                    menu_item_id=menu_item.id,
                    menu_title=menu_item.title,
                    category=menu_item.category.name,
                    quantity=line.quantity,
                    instructions=line.instructions,
                    prepare=line.prepare,
                    unit_price_cents=menu_item.price_cents,
                )
            )
        return order

    async def place_order(
        self,
        body: CreateOrderRequest,
        ctx: dict[str, Any] | None = None,
    ) -> tuple[OrderOutput, bool]:
        """
        Store the order and fan it out.

        Returns (order, created); created is False when ``order_number`` was
        already placed.
        """
        existing = self._orders.find_by_number(body.order_number)
        if existing is not None:
            logger.info("Order already placed", order_id=existing.id, order_number=body.order_number)
            # Completes a fan-out that failed after the order row was committed
            await FanoutService(self._db).fan_out_and_publish(existing.id, ctx)
            return self.get_order(existing.id), False

        order = self._insert_order(body)
        order_id = order.id
        try:
            self._commit("place order", order_number=body.order_number)
        except DatabaseError as e:
            # Lost the race on order_number: report the winner's order
            if isinstance(e.__cause__, IntegrityError):
                existing = self._orders.find_by_number(body.order_number)
                if existing is not None:
                    return self.to_output(existing), False
            raise

        logger.info(
            "Order placed",
            order_id=order_id,
            order_number=body.order_number,
            items=len(body.items),
            email=mask_email(body.user_email),
        )
        await FanoutService(self._db).fan_out_and_publish(order_id, ctx)
        return self.get_order(order_id), True

    async def fan_out(self, order_id: int, ctx: dict[str, Any] | None = None) -> FanoutResultOutput:
        """Re-run fan-out for an order (no-op for stations that already have a ticket)."""
        result = await FanoutService(self._db).fan_out_and_publish(order_id, ctx)
        return FanoutResultOutput(
            order_id=order_id,
            created=result.created,
            existing=result.existing,
            order_status=self._orders.get_status(order_id),
            tickets=TicketService(self._db).list_for_order(order_id),
        )
