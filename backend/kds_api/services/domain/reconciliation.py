"""
Order status reconciliation.

An order's status follows its station tickets while the order is still in
the kitchen's hands (PENDING, PREPARING, READY). Later states belong to
front of house and are never regressed from here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from kds_shared.config.constants import OrderStatus, TicketStatus
from kds_shared.config.logging import orders_logger as logger
from kds_api.repositories import KitchenTicketRepository, OrderRepository


def derive_order_status(ticket_statuses: Iterable[str] | None) -> str | None:
    """
    Order status implied by the statuses of its tickets.

    - no tickets: None (leave the order alone, fan-out may be partial)
    - every ticket CANCELLED: CANCELLED
    - otherwise, ignoring CANCELLED tickets: all COMPLETED is READY, all NEW
      is PENDING, anything else is PREPARING (unknown values count as in
      flight)
    """
    statuses = list(ticket_statuses or [])
    if not statuses:
        return None

    live = [s for s in statuses if s != TicketStatus.CANCELLED]
    if not live:
        return OrderStatus.CANCELLED
    if all(s == TicketStatus.COMPLETED for s in live):
        return OrderStatus.READY
    if all(s == TicketStatus.NEW for s in live):
        return OrderStatus.PENDING
    return OrderStatus.PREPARING


@dataclass(frozen=True)
class ReconcileResult:
    order_id: int
    previous_status: str | None
    status: str | None

    @property
    def changed(self) -> bool:
        return self.previous_status != self.status


class OrderReconciler:
    """
    Applies derive_order_status to a stored order.

    Runs inside the caller's transaction and does not commit; the ticket
    statuses are read in that same transaction so the derivation sees the
    caller's own writes.
    """

    def __init__(self, db: Session):
        self._db = db
        self._tickets = KitchenTicketRepository(db)
        self._orders = OrderRepository(db)

    def reconcile(self, order_id: int) -> ReconcileResult:
        # Order row lock serializes the station writes of one order
        current = self._orders.lock_status(order_id)
        if current not in OrderStatus.KITCHEN_MANAGED:
            return ReconcileResult(order_id, current, current)

        derived = derive_order_status(self._tickets.get_statuses_for_order(order_id))
        if derived is None or derived == current:
            return ReconcileResult(order_id, current, current)

        if not self._orders.set_status(order_id, current, derived):
            # Someone else moved the order meanwhile; theirs wins
            latest = self._orders.get_status(order_id)
            logger.info(
                "Order status changed concurrently, skipping reconciliation",
                order_id=order_id,
                expected=current,
                actual=latest,
            )
            return ReconcileResult(order_id, latest, latest)

        logger.info(
            "Order status reconciled",
            order_id=order_id,
            from_status=current,
            to_status=derived,
        )
        return ReconcileResult(order_id, current, derived)
