"""
Tests for compare-and-set ticket transitions and their side effects.
"""

import pytest
from sqlalchemy import select

from kds_shared.utils.exceptions import (
    ConflictingTransitionError,
    InsufficientRoleError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from kds_api.models import KitchenTicket, KitchenTicketItem, Order
from kds_api.services.domain import TicketService

CHEF = {"sub": "3", "roles": ["CHEF"]}
MANAGER = {"sub": "2", "roles": ["MANAGER"]}


def _status(db_session, ticket_id):
    db_session.expire_all()
    return db_session.get(KitchenTicket, ticket_id).status


def _order_status(db_session, order_id):
    db_session.expire_all()
    return db_session.get(Order, order_id).status


def _item_ids(db_session, ticket_id):
    return list(
        db_session.scalars(
            select(KitchenTicketItem.id)
            .where(KitchenTicketItem.ticket_id == ticket_id)
            .order_by(KitchenTicketItem.id)
        )
    )


def _first(statements, predicate) -> int:
    return next(i for i, sql in enumerate(statements) if predicate(sql.strip()))


class TestTransition:

    @pytest.mark.asyncio
    async def test_start_cooking(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)

        out = await service.transition(tickets["KITCHEN"], "IN_PROGRESS", "NEW", CHEF)

        assert out.status == "IN_PROGRESS"
        assert _status(db_session, tickets["KITCHEN"]) == "IN_PROGRESS"
        assert _order_status(db_session, order_id) == "PREPARING"

    @pytest.mark.asyncio
    async def test_stale_expected_status_conflicts(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["KITCHEN"], "IN_PROGRESS", "NEW", CHEF)

        # Second operator still sees NEW
        with pytest.raises(ConflictingTransitionError) as exc_info:
            await service.transition(tickets["KITCHEN"], "CANCELLED", "NEW", CHEF)

        err = exc_info.value
        assert err.status_code == 409
        assert err.current_status == "IN_PROGRESS"
        assert err.detail["current_status"] == "IN_PROGRESS"
        assert err.detail["retriable"] is True
        assert _status(db_session, tickets["KITCHEN"]) == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_only_one_of_two_racing_writes_wins(self, db_session, fanned_out):
        _, tickets = fanned_out
        first = TicketService(db_session)
        second = TicketService(db_session)

        await first.transition(tickets["BAR"], "IN_PROGRESS", "NEW", CHEF)
        with pytest.raises(ConflictingTransitionError):
            await second.transition(tickets["BAR"], "IN_PROGRESS", "NEW", CHEF)

    @pytest.mark.asyncio
    async def test_forbidden_transition(self, db_session, fanned_out):
        _, tickets = fanned_out
        with pytest.raises(InvalidTransitionError):
            await TicketService(db_session).transition(tickets["KITCHEN"], "COMPLETED", "NEW", CHEF)
        assert _status(db_session, tickets["KITCHEN"]) == "NEW"

    @pytest.mark.asyncio
    async def test_unknown_status_value(self, db_session, fanned_out):
        _, tickets = fanned_out
        with pytest.raises(ValidationError):
            await TicketService(db_session).transition(tickets["KITCHEN"], "PLATED", "NEW", CHEF)

    @pytest.mark.asyncio
    async def test_unknown_ticket(self, db_session, menu):
        with pytest.raises(TicketNotFoundError):
            await TicketService(db_session).transition(12345, "IN_PROGRESS", "NEW", CHEF)

    @pytest.mark.asyncio
    async def test_completing_marks_open_items_done(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["KITCHEN"], "IN_PROGRESS", "NEW", CHEF)

        out = await service.transition(tickets["KITCHEN"], "COMPLETED", "IN_PROGRESS", CHEF)

        assert {item.status for item in out.items} == {"DONE"}

    @pytest.mark.asyncio
    async def test_cancelling_cancels_open_items(self, db_session, fanned_out):
        _, tickets = fanned_out
        out = await TicketService(db_session).transition(tickets["BAR"], "CANCELLED", "NEW", CHEF)
        assert {item.status for item in out.items} == {"CANCELLED"}


class TestOrderReconciliation:

    @pytest.mark.asyncio
    async def test_ready_only_when_every_station_done(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)

        await service.bump(tickets["KITCHEN"], CHEF)
        await service.bump(tickets["KITCHEN"], CHEF)
        assert _order_status(db_session, order_id) == "PREPARING"

        await service.bump(tickets["BAR"], CHEF)
        await service.bump(tickets["BAR"], CHEF)
        assert _order_status(db_session, order_id) == "READY"

    @pytest.mark.asyncio
    async def test_recalled_ticket_holds_order_in_preparing(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)
        await service.bump(tickets["BAR"], CHEF)
        await service.bump(tickets["BAR"], CHEF)
        await service.bump(tickets["KITCHEN"], CHEF)
        await service.recall(tickets["KITCHEN"], ctx=CHEF)
        assert _order_status(db_session, order_id) == "PREPARING"

        await service.bump(tickets["KITCHEN"], CHEF)  # RECALLED -> IN_PROGRESS
        await service.bump(tickets["KITCHEN"], CHEF)  # -> COMPLETED
        assert _order_status(db_session, order_id) == "READY"

    @pytest.mark.asyncio
    async def test_cancelled_station_is_ignored(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["BAR"], "CANCELLED", "NEW", CHEF)
        assert _order_status(db_session, order_id) == "PENDING"

        await service.bump(tickets["KITCHEN"], CHEF)
        await service.bump(tickets["KITCHEN"], CHEF)
        assert _order_status(db_session, order_id) == "READY"

    @pytest.mark.asyncio
    async def test_all_cancelled_cancels_order(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["BAR"], "CANCELLED", "NEW", CHEF)
        await service.transition(tickets["KITCHEN"], "CANCELLED", "NEW", CHEF)
        assert _order_status(db_session, order_id) == "CANCELLED"

    @pytest.mark.asyncio
    async def test_served_order_is_never_regressed(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        order = db_session.get(Order, order_id)
        order.status = "SERVED"
        db_session.commit()

        await TicketService(db_session).bump(tickets["KITCHEN"], CHEF)

        assert _order_status(db_session, order_id) == "SERVED"

    @pytest.mark.asyncio
    async def test_order_status_event_published(self, db_session, fanned_out, published_events):
        order_id, tickets = fanned_out
        await TicketService(db_session).bump(tickets["KITCHEN"], CHEF)

        events = [call.args[2] for call in published_events.call_args_list]
        types = [e.type for e in events]
        assert "TICKET_STATUS_CHANGED" in types
        order_events = [e for e in events if e.type == "ORDER_STATUS_CHANGED"]
        assert len(order_events) == 1
        assert order_events[0].station is None
        assert order_events[0].entity["to_status"] == "PREPARING"


    @pytest.mark.asyncio
    async def test_order_row_locked_before_tickets_are_read(self, db_session, fanned_out, executed_sql):
        _, tickets = fanned_out

        await TicketService(db_session).bump(tickets["KITCHEN"], CHEF)

        order_lock = _first(
            executed_sql,
            lambda sql: sql.startswith("SELECT customer_order.status") and sql.endswith("FOR UPDATE"),
        )
        ticket_read = _first(
            executed_sql,
            lambda sql: sql.startswith("SELECT kitchen_ticket.status")
            and "kitchen_ticket.order_id =" in sql,
        )
        assert order_lock < ticket_read

    @pytest.mark.asyncio
    async def test_second_station_sees_first_station_completion(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)
        await service.bump(tickets["BAR"], CHEF)
        await service.bump(tickets["KITCHEN"], CHEF)

        await service.transition(tickets["KITCHEN"], "COMPLETED", "IN_PROGRESS", CHEF)
        await service.transition(tickets["BAR"], "COMPLETED", "IN_PROGRESS", CHEF)

        assert _order_status(db_session, order_id) == "READY"


class TestBumpAndRecall:

    @pytest.mark.asyncio
    async def test_bump_walks_forward(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        assert (await service.bump(tickets["KITCHEN"], CHEF)).status == "IN_PROGRESS"
        assert (await service.bump(tickets["KITCHEN"], CHEF)).status == "COMPLETED"

    @pytest.mark.asyncio
    async def test_bump_terminal_ticket(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["BAR"], "CANCELLED", "NEW", CHEF)
        with pytest.raises(InvalidStateError):
            await service.bump(tickets["BAR"], CHEF)

    @pytest.mark.asyncio
    async def test_recall_requires_in_progress(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        with pytest.raises(InvalidTransitionError):
            await service.recall(tickets["KITCHEN"], "NEW", CHEF)

        await service.bump(tickets["KITCHEN"], CHEF)
        assert (await service.recall(tickets["KITCHEN"], ctx=CHEF)).status == "RECALLED"


class TestItemStatus:

    @pytest.mark.asyncio
    async def test_working_an_item_starts_the_ticket(self, db_session, fanned_out):
        _, tickets = fanned_out
        item_id = _item_ids(db_session, tickets["KITCHEN"])[0]

        out = await TicketService(db_session).update_item_status(item_id, "IN_PROGRESS", CHEF)

        assert out.status == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_last_item_done_completes_ticket(self, db_session, fanned_out):
        order_id, tickets = fanned_out
        service = TicketService(db_session)
        first, second = _item_ids(db_session, tickets["KITCHEN"])

        out = await service.update_item_status(first, "DONE", CHEF)
        assert out.status == "IN_PROGRESS"

        out = await service.update_item_status(second, "DONE", CHEF)
        assert out.status == "COMPLETED"
        assert _order_status(db_session, order_id) == "PREPARING"

    @pytest.mark.asyncio
    async def test_cancelled_items_do_not_block_completion(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        first, second = _item_ids(db_session, tickets["KITCHEN"])

        await service.update_item_status(first, "CANCELLED", CHEF)
        out = await service.update_item_status(second, "DONE", CHEF)

        assert out.status == "COMPLETED"

    @pytest.mark.asyncio
    async def test_items_of_terminal_ticket_are_frozen(self, db_session, fanned_out):
        _, tickets = fanned_out
        service = TicketService(db_session)
        await service.transition(tickets["BAR"], "CANCELLED", "NEW", CHEF)
        item_id = _item_ids(db_session, tickets["BAR"])[0]

        with pytest.raises(InvalidStateError):
            await service.update_item_status(item_id, "DONE", CHEF)

    @pytest.mark.asyncio
    async def test_ticket_row_locked_before_item_write(self, db_session, fanned_out, executed_sql):
        _, tickets = fanned_out
        item_id = _item_ids(db_session, tickets["KITCHEN"])[0]

        await TicketService(db_session).update_item_status(item_id, "PENDING", CHEF)

        ticket_lock = _first(
            executed_sql,
            lambda sql: sql.startswith("SELECT kitchen_ticket.order_id") and sql.endswith("FOR UPDATE"),
        )
        item_write = _first(executed_sql, lambda sql: sql.startswith("UPDATE kitchen_ticket_item"))
        assert ticket_lock < item_write

    @pytest.mark.asyncio
    async def test_unknown_item(self, db_session, fanned_out):
        with pytest.raises(NotFoundError):
            await TicketService(db_session).update_item_status(9999, "DONE", CHEF)

    @pytest.mark.asyncio
    async def test_unknown_item_status(self, db_session, fanned_out):
        _, tickets = fanned_out
        item_id = _item_ids(db_session, tickets["BAR"])[0]
        with pytest.raises(ValidationError):
            await TicketService(db_session).update_item_status(item_id, "BURNT", CHEF)


class TestPriority:

    @pytest.mark.asyncio
    async def test_manager_can_rush(self, db_session, fanned_out):
        _, tickets = fanned_out
        out = await TicketService(db_session).set_priority(tickets["KITCHEN"], 5, MANAGER)
        assert out.priority == 5

    @pytest.mark.asyncio
    async def test_chef_cannot_rush(self, db_session, fanned_out):
        _, tickets = fanned_out
        with pytest.raises(InsufficientRoleError):
            await TicketService(db_session).set_priority(tickets["KITCHEN"], 5, CHEF)

    @pytest.mark.asyncio
    async def test_priority_out_of_range(self, db_session, fanned_out):
        _, tickets = fanned_out
        with pytest.raises(ValidationError):
            await TicketService(db_session).set_priority(tickets["KITCHEN"], 10, MANAGER)
