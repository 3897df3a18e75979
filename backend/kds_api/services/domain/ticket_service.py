"""
Ticket domain service: station feed reads and status transitions.

Every status write is a compare-and-set on the stored status. A lost race
surfaces as ConflictingTransitionError with the current status and leaves
the ticket untouched, so the display can refresh and retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy.orm import Session

from kds_shared.config.constants import (
    BUMP_TARGETS,
    MANAGEMENT_ROLES,
    Limits,
    TicketItemStatus,
    TicketStatus,
    can_transition,
    is_terminal,
    validate_station,
    validate_ticket_item_status,
    validate_ticket_status,
)
from kds_shared.config.logging import kitchen_logger as logger
from kds_shared.config.settings import settings
from kds_shared.utils.exceptions import (
    ConflictingTransitionError,
    InsufficientRoleError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from kds_shared.utils.kitchen_schemas import (
    KitchenTicketFeed,
    KitchenTicketOutput,
    TicketDotOutput,
    TicketDotsResponse,
)
from kds_shared.utils.ticket_display import build_ticket_dots, render_ticket_dots_html
from kds_api.models import KitchenTicket, utcnow
from kds_api.repositories import KitchenTicketRepository, OrderRepository
from kds_api.services.base_service import BaseService
from kds_api.services.domain.reconciliation import OrderReconciler, ReconcileResult
from kds_api.services.domain.ticket_output import build_ticket_output
from kds_api.services.events import (
    publish_order_status_changed,
    publish_ticket_item_updated,
    publish_ticket_priority_changed,
    publish_ticket_status_changed,
)


@dataclass
class _Step:
    """One committed ticket status change, kept for event publishing."""
    from_status: str
    to_status: str


class TicketService(BaseService):
    """Reads and writes station tickets."""

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = KitchenTicketRepository(db)
        self._orders = OrderRepository(db)
        self._reconciler = OrderReconciler(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def _to_outputs(self, tickets: Sequence[KitchenTicket]) -> list[KitchenTicketOutput]:
        siblings = self._repo.get_sibling_statuses(tickets)
        return [build_ticket_output(t, siblings.get(t.id)) for t in tickets]

    def list_feed(
        self,
        station: str,
        statuses: list[str] | None = None,
        updated_after: datetime | None = None,
        limit: int | None = None,
    ) -> KitchenTicketFeed:
        """
        Tickets for one station display: rush first, then oldest first.

        ``updated_after`` turns the call into a delta poll; stale COMPLETED
        and CANCELLED tickets are pruned either way.
        """
        if not validate_station(station):
            raise ValidationError(f"Unknown station: {station}", field="station", value=station)
        for status in statuses or []:
            if not validate_ticket_status(status):
                raise ValidationError(f"Unknown ticket status: {status}", field="status_in", value=status)

        limit = min(max(1, limit or settings.kds_default_feed_limit), settings.kds_max_feed_limit)
        server_time = utcnow()
        tickets = self._repo.find_feed(
            station=station,
            statuses=statuses,
            updated_after=updated_after,
            limit=limit,
        )
        return KitchenTicketFeed(
            station=station,
            tickets=self._to_outputs(tickets),
            server_time=server_time,
        )

    def get_ticket(self, ticket_id: int) -> KitchenTicketOutput:
        ticket = self._repo.reload(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return self._to_outputs([ticket])[0]

    def list_for_order(self, order_id: int) -> list[KitchenTicketOutput]:
        if not self._orders.exists(order_id):
            raise OrderNotFoundError(order_id)
        return self._to_outputs(self._repo.find_by_order(order_id))

    def get_dots(self, order_id: int) -> TicketDotsResponse:
        """Aggregate station indicator for one order."""
        if not self._orders.exists(order_id):
            raise OrderNotFoundError(order_id)
        tickets = self._repo.find_by_order(order_id)
        dots = build_ticket_dots(tickets)
        return TicketDotsResponse(
            order_id=order_id,
            dots=[TicketDotOutput(**dot.to_dict()) for dot in dots],
            html=render_ticket_dots_html(tickets),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def _cas(self, ticket_id: int, expected: str, target: str) -> None:
        """Compare-and-set plus item side effects; raises on a lost race."""
        if not self._repo.compare_and_set_status(ticket_id, expected, target):
            current = self._repo.get_status(ticket_id)
            self._db.rollback()
            raise ConflictingTransitionError(ticket_id, expected, current)

        if target == TicketStatus.COMPLETED:
            self._repo.complete_items(ticket_id)
        elif target == TicketStatus.CANCELLED:
            self._repo.cancel_items(ticket_id)

    async def _publish(
        self,
        order_id: int,
        station: str,
        ticket_id: int,
        steps: list[_Step],
        reconciled: ReconcileResult,
        ctx: dict[str, Any] | None,
    ) -> None:
        for step in steps:
            await publish_ticket_status_changed(
                order_id, station, ticket_id, step.from_status, step.to_status, ctx
            )
        if reconciled.changed:
            await publish_order_status_changed(
                order_id, reconciled.previous_status, reconciled.status, ctx
            )

    async def transition(
        self,
        ticket_id: int,
        target: str,
        expected: str,
        ctx: dict[str, Any] | None = None,
    ) -> KitchenTicketOutput:
        """
        Move a ticket from ``expected`` to ``target``.

        Raises:
            TicketNotFoundError: unknown ticket.
            ValidationError: unknown status value.
            InvalidTransitionError: the state machine forbids expected → target.
            ConflictingTransitionError: the stored status is not ``expected``.
        """
        state = self._repo.get_state(ticket_id)
        if state is None:
            raise TicketNotFoundError(ticket_id)
        if not validate_ticket_status(target):
            raise ValidationError(f"Unknown ticket status: {target}", field="status", value=target)
        if not validate_ticket_status(expected):
            raise ValidationError(
                f"Unknown ticket status: {expected}", field="expected_status", value=expected
            )
        if not can_transition(expected, target):
            raise InvalidTransitionError("Ticket", expected, target, ticket_id=ticket_id)

        self._cas(ticket_id, expected, target)
        reconciled = self._reconciler.reconcile(state.order_id)
        self._commit("ticket transition", ticket_id=ticket_id)

        logger.info(
            "Ticket transitioned",
            ticket_id=ticket_id,
            order_id=state.order_id,
            station=state.station,
            from_status=expected,
            to_status=target,
        )
        await self._publish(
            state.order_id, state.station, ticket_id, [_Step(expected, target)], reconciled, ctx
        )
        return self.get_ticket(ticket_id)

    async def bump(self, ticket_id: int, ctx: dict[str, Any] | None = None) -> KitchenTicketOutput:
        """Advance along the forward path using the stored status as ``expected``."""
        state = self._repo.get_state(ticket_id)
        if state is None:
            raise TicketNotFoundError(ticket_id)
        target = BUMP_TARGETS.get(state.status)
        if target is None:
            raise InvalidStateError(
                "Ticket", state.status, expected_states=list(BUMP_TARGETS), ticket_id=ticket_id
            )
        return await self.transition(ticket_id, target, state.status, ctx)

    async def recall(
        self,
        ticket_id: int,
        expected: str = TicketStatus.IN_PROGRESS,
        ctx: dict[str, Any] | None = None,
    ) -> KitchenTicketOutput:
        return await self.transition(ticket_id, TicketStatus.RECALLED, expected, ctx)

    async def update_item_status(
        self,
        item_id: int,
        status: str,
        ctx: dict[str, Any] | None = None,
    ) -> KitchenTicketOutput:
        """
        Set one item's status and let the ticket follow.

        Working on an item of a NEW ticket starts the ticket; once every
        non-cancelled item is DONE the ticket completes (via IN_PROGRESS when
        needed). Items of COMPLETED/CANCELLED tickets are frozen.
        """
        if not validate_ticket_item_status(status):
            raise ValidationError(f"Unknown ticket item status: {status}", field="status", value=status)

        item = self._repo.get_item(item_id)
        if item is None:
            raise NotFoundError("Ticket item", item_id)
        ticket_id = item.ticket_id
        state = self._repo.lock_state(ticket_id)
        if is_terminal(state.status):
            raise InvalidStateError(
                "Ticket", state.status, expected_states=list(TicketStatus.ACTIVE), ticket_id=ticket_id
            )

        self._repo.set_item_status(item_id, status)
        self._repo.touch(ticket_id)

        steps: list[_Step] = []
        current = state.status
        item_statuses = [s for s in self._repo.get_item_statuses(ticket_id) if s != TicketItemStatus.CANCELLED]
        all_done = bool(item_statuses) and all(s == TicketItemStatus.DONE for s in item_statuses)
        work_started = status in (TicketItemStatus.IN_PROGRESS, TicketItemStatus.DONE)

        if current in (TicketStatus.NEW, TicketStatus.RECALLED) and (all_done or work_started):
            self._cas(ticket_id, current, TicketStatus.IN_PROGRESS)
            steps.append(_Step(current, TicketStatus.IN_PROGRESS))
            current = TicketStatus.IN_PROGRESS
        if all_done and current == TicketStatus.IN_PROGRESS:
            self._cas(ticket_id, current, TicketStatus.COMPLETED)
            steps.append(_Step(current, TicketStatus.COMPLETED))

        reconciled = self._reconciler.reconcile(state.order_id)
        self._commit("ticket item update", item_id=item_id)

        logger.info(
            "Ticket item updated",
            item_id=item_id,
            ticket_id=ticket_id,
            status=status,
            ticket_status=steps[-1].to_status if steps else state.status,
        )
        await publish_ticket_item_updated(state.order_id, state.station, ticket_id, item_id, status, ctx)
        await self._publish(state.order_id, state.station, ticket_id, steps, reconciled, ctx)
        return self.get_ticket(ticket_id)

    async def set_priority(
        self,
        ticket_id: int,
        priority: int,
        ctx: dict[str, Any],
    ) -> KitchenTicketOutput:
        """Rush (priority > 0) or un-rush a ticket. ADMIN/MANAGER only."""
        if not set(ctx.get("roles", [])).intersection(MANAGEMENT_ROLES):
            raise InsufficientRoleError(sorted(MANAGEMENT_ROLES), ticket_id=ticket_id)
        if not 0 <= priority <= Limits.MAX_PRIORITY:
            raise ValidationError(
                f"Priority must be between 0 and {Limits.MAX_PRIORITY}", field="priority", value=priority
            )

        state = self._repo.get_state(ticket_id)
        if state is None:
            raise TicketNotFoundError(ticket_id)

        self._repo.set_priority(ticket_id, priority)
        self._commit("ticket priority", ticket_id=ticket_id)

        logger.info("Ticket priority set", ticket_id=ticket_id, priority=priority)
        await publish_ticket_priority_changed(state.order_id, state.station, ticket_id, priority, ctx)
        return self.get_ticket(ticket_id)
