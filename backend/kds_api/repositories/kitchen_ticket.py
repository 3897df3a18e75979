"""
Kitchen Ticket Repository - Data access for station tickets.

Status writes are compare-and-set UPDATEs so two operators of the same
station can never overwrite each other's transition.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

from sqlalchemy import Select, and_, or_, select, update
from sqlalchemy.orm import joinedload, selectinload

from kds_shared.config.constants import TicketItemStatus, TicketStatus, sibling_station
from kds_shared.config.settings import settings
from kds_api.models import KitchenTicket, KitchenTicketItem, utcnow
from .base import BaseRepository, RepositoryFilters


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite returns them naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class TicketFilters(RepositoryFilters):
    """Filters for the station feed."""

    station: str | None = None
    statuses: list[str] | None = None
    order_id: int | None = None
    updated_after: datetime | None = None
    # Hide COMPLETED/CANCELLED tickets past their retention window
    prune_stale: bool = True
    now: datetime | None = None


class KitchenTicketRepository(BaseRepository[KitchenTicket]):
    """
    Repository for KitchenTicket entities.

    Eager loads the order (for the card header) and the items, so a feed
    page costs a fixed number of queries regardless of its size.
    """

    @property
    def model(self) -> type[KitchenTicket]:
        return KitchenTicket

    def _base_query(self) -> Select:
        return (
            select(KitchenTicket)
            .options(joinedload(KitchenTicket.order))
            .options(selectinload(KitchenTicket.items))
        )

    def _retention_clause(self, now: datetime):
        completed_cutoff = now - timedelta(minutes=settings.kds_completed_retention_minutes)
        cancelled_cutoff = now - timedelta(minutes=settings.kds_cancelled_retention_minutes)
        return or_(
            KitchenTicket.status.not_in(list(TicketStatus.TERMINAL)),
            and_(
                KitchenTicket.status == TicketStatus.COMPLETED,
                KitchenTicket.updated_at >= completed_cutoff,
            ),
            and_(
                KitchenTicket.status == TicketStatus.CANCELLED,
                KitchenTicket.updated_at >= cancelled_cutoff,
            ),
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, TicketFilters):
            filters = TicketFilters(limit=filters.limit, offset=filters.offset)

        if filters.station:
            query = query.where(KitchenTicket.station == filters.station)

        if filters.statuses:
            query = query.where(KitchenTicket.status.in_(filters.statuses))

        if filters.order_id:
            query = query.where(KitchenTicket.order_id == filters.order_id)

        if filters.updated_after is not None:
            query = query.where(KitchenTicket.updated_at > as_utc(filters.updated_after))

        if filters.prune_stale:
            query = query.where(self._retention_clause(filters.now or utcnow()))

        # Rush first, then first-in first-out
        return query.order_by(
            KitchenTicket.priority.desc(),
            KitchenTicket.created_at.asc(),
            KitchenTicket.id.asc(),
        )

    def find_feed(
        self,
        station: str,
        statuses: list[str] | None = None,
        updated_after: datetime | None = None,
        limit: int | None = None,
    ) -> Sequence[KitchenTicket]:
        """Tickets for one station display."""
        filters = TicketFilters(
            station=station,
            statuses=statuses,
            updated_after=updated_after,
            limit=limit or settings.kds_default_feed_limit,
        )
        return self.find_all(filters)

    def find_by_order(self, order_id: int) -> Sequence[KitchenTicket]:
        """All tickets of an order, kitchen before bar."""
        query = (
            self._base_query()
            .where(KitchenTicket.order_id == order_id)
            .order_by(KitchenTicket.station.desc())  # KITCHEN > BAR alphabetically
        )
        return self._db.execute(query).scalars().unique().all()

    def get_status(self, ticket_id: int) -> str | None:
        """Read the stored status straight from the database."""
        return self._db.scalar(
            select(KitchenTicket.status).where(KitchenTicket.id == ticket_id)
        )

    def get_state(self, ticket_id: int):
        """(order_id, station, status) row for a ticket, or None."""
        return self._db.execute(
            select(KitchenTicket.order_id, KitchenTicket.station, KitchenTicket.status)
            .where(KitchenTicket.id == ticket_id)
        ).one_or_none()

    def lock_state(self, ticket_id: int):
        """get_state with the ticket row locked until the transaction ends."""
        return self._db.execute(
            select(KitchenTicket.order_id, KitchenTicket.station, KitchenTicket.status)
            .where(KitchenTicket.id == ticket_id)
            .with_for_update()
        ).one_or_none()

    def get_stations(self, order_id: int) -> set[str]:
        rows = self._db.scalars(
            select(KitchenTicket.station).where(KitchenTicket.order_id == order_id)
        )
        return set(rows)

    def get_statuses_for_order(self, order_id: int) -> list[str]:
        """Current statuses of every ticket of an order, read inside the open transaction."""
        return list(
            self._db.scalars(
                select(KitchenTicket.status).where(KitchenTicket.order_id == order_id)
            )
        )

    def get_sibling_statuses(self, tickets: Sequence[KitchenTicket]) -> dict[int, str]:
        """Map ticket id -> status of the other station's ticket of the same order."""
        if not tickets:
            return {}
        order_ids = {t.order_id for t in tickets}
        rows = self._db.execute(
            select(KitchenTicket.order_id, KitchenTicket.station, KitchenTicket.status)
            .where(KitchenTicket.order_id.in_(order_ids))
        ).all()
        by_key = {(order_id, station): status for order_id, station, status in rows}
        result: dict[int, str] = {}
        for ticket in tickets:
            sibling = by_key.get((ticket.order_id, sibling_station(ticket.station)))
            if sibling is not None:
                result[ticket.id] = sibling
        return result

    def compare_and_set_status(self, ticket_id: int, expected: str, target: str) -> bool:
        """
        UPDATE ... SET status=target WHERE id=? AND status=expected.

        Returns True when exactly one row changed. Pending ORM changes are
        flushed first; in-session copies of the ticket are stale afterwards
        until the transaction commits.
        """
        self._db.flush()
        result = self._db.execute(
            update(KitchenTicket)
            .where(KitchenTicket.id == ticket_id, KitchenTicket.status == expected)
            .values(status=target, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_priority(self, ticket_id: int, priority: int) -> bool:
        self._db.flush()
        result = self._db.execute(
            update(KitchenTicket)
            .where(KitchenTicket.id == ticket_id)
            .values(priority=priority, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def touch(self, ticket_id: int) -> None:
        """Bump updated_at so item-level changes show up in delta polls."""
        self._db.execute(
            update(KitchenTicket)
            .where(KitchenTicket.id == ticket_id)
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def update_item_statuses(
        self,
        ticket_id: int,
        from_statuses: list[str],
        target: str,
    ) -> int:
        """Move every item of a ticket in ``from_statuses`` to ``target``."""
        result = self._db.execute(
            update(KitchenTicketItem)
            .where(
                KitchenTicketItem.ticket_id == ticket_id,
                KitchenTicketItem.status.in_(from_statuses),
            )
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def complete_items(self, ticket_id: int) -> int:
        return self.update_item_statuses(ticket_id, TicketItemStatus.OPEN, TicketItemStatus.DONE)

    def cancel_items(self, ticket_id: int) -> int:
        return self.update_item_statuses(
            ticket_id, TicketItemStatus.OPEN, TicketItemStatus.CANCELLED
        )

    def get_item(self, item_id: int) -> KitchenTicketItem | None:
        return self._db.scalar(
            select(KitchenTicketItem)
            .where(KitchenTicketItem.id == item_id)
            .options(joinedload(KitchenTicketItem.ticket))
        )

    def set_item_status(self, item_id: int, status: str) -> None:
        self._db.execute(
            update(KitchenTicketItem)
            .where(KitchenTicketItem.id == item_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )

    def get_item_statuses(self, ticket_id: int) -> list[str]:
        return list(
            self._db.scalars(
                select(KitchenTicketItem.status).where(KitchenTicketItem.ticket_id == ticket_id)
            )
        )

    def reload(self, ticket_id: int) -> KitchenTicket | None:
        """Fetch a ticket bypassing stale in-session state."""
        query = self._base_query().where(KitchenTicket.id == ticket_id)
        return self._db.execute(
            query.execution_options(populate_existing=True)
        ).scalars().unique().one_or_none()
