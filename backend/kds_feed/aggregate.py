"""
Order-level station dots derived from the station feeds a screen watches.

Each station feed reports its own tickets plus the sibling station's status,
so one feed is enough to know both dots of an order. When both feeds are
attached, a ticket's own status wins over the sibling hint the other feed
carried.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from kds_shared.config.constants import sibling_station
from kds_shared.config.logging import feed_logger as logger
from kds_shared.utils.ticket_display import TicketDot, build_ticket_dots
from .feed import FeedChange, StationFeed

DotsCallback = Callable[[int, list[TicketDot]], Any]


class OrderDotsTracker:
    """Keeps order -> {station: status} and re-derives dots of changed orders."""

    def __init__(self) -> None:
        # order_id -> station -> status reported by that station's own feed
        self._own: dict[int, dict[str, str]] = {}
        # order_id -> station -> status hinted by the sibling feed
        self._hinted: dict[int, dict[str, str]] = {}
        self._dots: dict[int, list[TicketDot]] = {}
        self._subscribers: list[DotsCallback] = []
        self._detach: list[Callable[[], None]] = []

    def attach(self, feed: StationFeed) -> None:
        self._detach.append(feed.subscribe(self.handle_change))

    def detach_all(self) -> None:
        for unsubscribe in self._detach:
            unsubscribe()
        self._detach.clear()

    def subscribe(self, callback: DotsCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def statuses(self, order_id: int) -> dict[str, str]:
        merged = dict(self._hinted.get(order_id, {}))
        merged.update(self._own.get(order_id, {}))
        return merged

    def dots(self, order_id: int) -> list[TicketDot]:
        return list(self._dots.get(order_id, []))

    def _forget_station(self, station: str, keep: set[int]) -> set[int]:
        """Drop a station's entries for orders no longer in its snapshot."""
        affected: set[int] = set()
        for table in (self._own, self._hinted):
            for order_id, by_station in list(table.items()):
                owner = station if table is self._own else sibling_station(station)
                if order_id in keep or owner not in by_station:
                    continue
                del by_station[owner]
                if not by_station:
                    del table[order_id]
                affected.add(order_id)
        return affected

    async def handle_change(self, change: FeedChange) -> None:
        station = change.station
        present: set[int] = set()
        affected: set[int] = set()

        for ticket in change.snapshot:
            present.add(ticket.order_id)
            own = self._own.setdefault(ticket.order_id, {})
            if own.get(station) != ticket.status:
                own[station] = ticket.status
                affected.add(ticket.order_id)
            if ticket.sibling_ticket_status is not None:
                hinted = self._hinted.setdefault(ticket.order_id, {})
                other = sibling_station(station)
                if hinted.get(other) != ticket.sibling_ticket_status:
                    hinted[other] = ticket.sibling_ticket_status
                    affected.add(ticket.order_id)

        if change.full_reload or change.removed_ids:
            affected |= self._forget_station(station, present)

        for order_id in sorted(affected):
            await self._recompute(order_id)

    async def _recompute(self, order_id: int) -> None:
        by_station = self.statuses(order_id)
        dots = build_ticket_dots(
            [{"station": s, "status": status} for s, status in by_station.items()]
        )
        if dots == self._dots.get(order_id, []):
            return
        if dots:
            self._dots[order_id] = dots
        else:
            self._dots.pop(order_id, None)

        for callback in list(self._subscribers):
            try:
                result = callback(order_id, dots)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error("Dots observer failed", order_id=order_id, exc_info=True)
