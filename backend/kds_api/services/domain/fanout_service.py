"""
Order fan-out: one ticket per station the order needs.

Idempotent. Stations that already have a ticket are skipped, and the
UNIQUE(order_id, station) constraint settles concurrent runs: the loser's
insert fails, its transaction is rolled back and the run is retried, which
then finds the winner's ticket and creates nothing.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kds_shared.config.constants import DisplayStation, TicketStatus, TicketItemStatus
from kds_shared.config.logging import kitchen_logger as logger
from kds_shared.infrastructure.db import safe_commit
from kds_shared.utils.exceptions import DatabaseError, OrderNotFoundError, ValidationError
from kds_api.models import KitchenTicket, KitchenTicketItem, OrderItem
from kds_api.repositories import KitchenTicketRepository, OrderRepository
from kds_api.services.base_service import BaseService
from kds_api.services.domain.reconciliation import OrderReconciler, ReconcileResult
from kds_api.services.events import publish_order_status_changed, publish_tickets_created

# One retry is enough: after a collision the winner's tickets are visible
MAX_FANOUT_ATTEMPTS = 2


@dataclass
class FanoutResult:
    order_id: int
    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    created_ticket_ids: list[tuple[int, str]] = field(default_factory=list)
    reconciled: ReconcileResult | None = None

    @property
    def order_status(self) -> str | None:
        return self.reconciled.status if self.reconciled else None


def group_items_by_station(
    items: list[tuple[OrderItem, str | None]],
) -> dict[str, list[OrderItem]]:
    """Station → items, kitchen first. Items whose category is unknown go to the kitchen."""
    grouped: dict[str, list[OrderItem]] = defaultdict(list)
    for item, station in items:
        grouped[station if station in DisplayStation.ALL else DisplayStation.DEFAULT].append(item)
    return {station: grouped[station] for station in DisplayStation.ALL if station in grouped}


class FanoutService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._tickets = KitchenTicketRepository(db)
        self._orders = OrderRepository(db)
        self._reconciler = OrderReconciler(db)

    def _create_ticket(self, order_id: int, station: str, items: list[OrderItem]) -> KitchenTicket:
        ticket = KitchenTicket(order_id=order_id, station=station, status=TicketStatus.NEW)
        self._db.add(ticket)
        self._db.flush()  # IntegrityError surfaces here on a duplicate station
        for item in items:
            self._db.add(
                KitchenTicketItem(
                    ticket_id=ticket.id,
                    order_item_id=item.id,
                    menu_title=item.menu_title,
                    quantity=item.quantity,
                    instructions=item.instructions,
                    prepare=item.prepare,
                    category=item.category,
                    status=TicketItemStatus.PENDING,
                )
            )
        return ticket

    def _attempt(self, order_id: int) -> FanoutResult:
        by_station = group_items_by_station(self._orders.get_item_stations(order_id))
        if not by_station:
            raise ValidationError("Order has no items to prepare", order_id=order_id)

        existing = self._tickets.get_stations(order_id)
        result = FanoutResult(order_id=order_id)
        for station, items in by_station.items():
            if station in existing:
                result.existing.append(station)
                continue
            ticket = self._create_ticket(order_id, station, items)
            result.created.append(station)
            result.created_ticket_ids.append((ticket.id, station))

        self._db.flush()
        result.reconciled = self._reconciler.reconcile(order_id)
        safe_commit(self._db)
        return result

    def fan_out(self, order_id: int) -> FanoutResult:
        """Create the missing station tickets of an order and reconcile its status."""
        if not self._orders.exists(order_id):
            raise OrderNotFoundError(order_id)

        for attempt in range(1, MAX_FANOUT_ATTEMPTS + 1):
            try:
                result = self._attempt(order_id)
            except IntegrityError as e:
                # safe_commit or flush already failed; make sure the session is usable
                self._db.rollback()
                if attempt == MAX_FANOUT_ATTEMPTS:
                    raise DatabaseError("fan-out", order_id=order_id, error=str(e)) from e
                logger.info("Duplicate fan-out detected, re-reading tickets", order_id=order_id)
                continue

            logger.info(
                "Order fanned out",
                order_id=order_id,
                created=result.created,
                existing=result.existing,
            )
            return result

        raise DatabaseError("fan-out", order_id=order_id)

    async def fan_out_and_publish(
        self,
        order_id: int,
        ctx: dict[str, Any] | None = None,
    ) -> FanoutResult:
        result = self.fan_out(order_id)
        if result.created_ticket_ids:
            await publish_tickets_created(order_id, result.created_ticket_ids, ctx)
        if result.reconciled and result.reconciled.changed:
            await publish_order_status_changed(
                order_id, result.reconciled.previous_status, result.reconciled.status, ctx
            )
        return result
