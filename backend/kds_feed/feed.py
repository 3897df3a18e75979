"""
Station feed: the polled, never-blanking ticket list behind one display.

The first successful poll loads the full list; later polls ask only for
tickets updated after the newest ``updated_at`` already seen and merge them
by id. A failed poll keeps the last good snapshot on screen and only moves
the error counter, which drives the backoff and the stale banner.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from kds_shared.config.constants import DisplayStation, TicketStatus
from kds_shared.config.logging import feed_logger as logger
from kds_shared.config.settings import settings
from kds_shared.utils.kitchen_schemas import KitchenTicketOutput
from .backoff import PollBackoff
from .client import TicketFeedClient, TransientFeedFailure

FeedCallback = Callable[["FeedChange"], Any]
NewTicketsCallback = Callable[[list[KitchenTicketOutput]], Any]


@dataclass(frozen=True)
class FeedChange:
    """What one poll changed. ``snapshot`` is the full list after the change."""

    station: str
    snapshot: tuple[KitchenTicketOutput, ...]
    added_ids: frozenset[int] = frozenset()
    updated_ids: frozenset[int] = frozenset()
    removed_ids: frozenset[int] = frozenset()
    full_reload: bool = False


@dataclass
class Lanes:
    new: list[KitchenTicketOutput] = field(default_factory=list)
    # IN_PROGRESS, RECALLED and any status the display does not know
    in_progress: list[KitchenTicketOutput] = field(default_factory=list)
    cancelled: list[KitchenTicketOutput] = field(default_factory=list)
    completed: list[KitchenTicketOutput] = field(default_factory=list)


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def sort_tickets(tickets) -> list[KitchenTicketOutput]:
    """Rush first, then first-in first-out."""
    return sorted(tickets, key=lambda t: (-t.priority, _utc(t.created_at), t.id))


class StationFeed:
    """
    Polls one station's feed and keeps the last good snapshot.

    Observers registered with ``subscribe`` get a FeedChange after every poll
    that changed the snapshot; a failing observer is logged and skipped.
    """

    def __init__(
        self,
        client: TicketFeedClient,
        station: str,
        completed_visible: bool = False,
        backoff: PollBackoff | None = None,
        stale_error_threshold: int | None = None,
        page_limit: int | None = None,
    ):
        if station not in DisplayStation.ALL:
            raise ValueError(f"Unknown station: {station}")
        self._client = client
        self.station = station
        self.completed_visible = completed_visible
        self.backoff = backoff or PollBackoff.from_settings()
        self.stale_error_threshold = stale_error_threshold or settings.kds_stale_error_threshold
        self.page_limit = page_limit or settings.kds_default_feed_limit

        self._tickets: dict[int, KitchenTicketOutput] = {}
        self._loaded = False
        self._cursor: datetime | None = None
        # A full page may have cut off changed tickets; reload everything next time
        self._resync = False
        self.consecutive_errors = 0
        self.last_error: str | None = None
        self.last_success_at: datetime | None = None

        self._subscribers: list[FeedCallback] = []
        self._new_ticket_callbacks: list[NewTicketsCallback] = []
        self._stop = asyncio.Event()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def tickets(self) -> list[KitchenTicketOutput]:
        return sort_tickets(self._tickets.values())

    @property
    def connection_ok(self) -> bool:
        return self.consecutive_errors < self.stale_error_threshold

    @property
    def is_stale(self) -> bool:
        return not self.connection_ok

    def next_delay(self) -> float:
        return self.backoff.delay(self.consecutive_errors)

    def lanes(self) -> Lanes:
        lanes = Lanes()
        for ticket in self.tickets:
            if ticket.status == TicketStatus.NEW:
                lanes.new.append(ticket)
            elif ticket.status == TicketStatus.CANCELLED:
                lanes.cancelled.append(ticket)
            elif ticket.status == TicketStatus.COMPLETED:
                if self.completed_visible:
                    lanes.completed.append(ticket)
            else:
                lanes.in_progress.append(ticket)
        return lanes

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, callback: FeedCallback) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def on_new_tickets(self, callback: NewTicketsCallback) -> Callable[[], None]:
        """Called with tickets first seen after the initial load (e.g. to chime)."""
        self._new_ticket_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._new_ticket_callbacks:
                self._new_ticket_callbacks.remove(callback)

        return unsubscribe

    async def _notify(self, callbacks: list[Callable[[Any], Any]], payload: Any) -> None:
        for callback in list(callbacks):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    "Feed observer failed",
                    station=self.station,
                    callback=getattr(callback, "__qualname__", repr(callback)),
                    exc_info=True,
                )

    # =========================================================================
    # Polling
    # =========================================================================

    def _prune(self, now: datetime) -> set[int]:
        """Drop terminal tickets past their retention window."""
        limits = {
            TicketStatus.COMPLETED: timedelta(minutes=settings.kds_completed_retention_minutes),
            TicketStatus.CANCELLED: timedelta(minutes=settings.kds_cancelled_retention_minutes),
        }
        removed = {
            ticket_id
            for ticket_id, ticket in self._tickets.items()
            if ticket.status in limits and now - _utc(ticket.updated_at) > limits[ticket.status]
        }
        for ticket_id in removed:
            del self._tickets[ticket_id]
        return removed

    def _apply(self, incoming: list[KitchenTicketOutput], full: bool, now: datetime) -> FeedChange | None:
        added: set[int] = set()
        updated: set[int] = set()
        removed: set[int] = set()

        if full:
            incoming_ids = {t.id for t in incoming}
            removed = set(self._tickets) - incoming_ids
            previous = self._tickets
            self._tickets = {}
        else:
            previous = dict(self._tickets)

        for ticket in incoming:
            before = previous.get(ticket.id)
            if before is None:
                added.add(ticket.id)
            elif before != ticket:
                updated.add(ticket.id)
            self._tickets[ticket.id] = ticket

        removed |= self._prune(now)
        added -= removed
        updated -= removed

        for ticket in incoming:
            ts = _utc(ticket.updated_at)
            if self._cursor is None or ts > self._cursor:
                self._cursor = ts

        if not (added or updated or removed or full):
            return None
        return FeedChange(
            station=self.station,
            snapshot=tuple(self.tickets),
            added_ids=frozenset(added),
            updated_ids=frozenset(updated),
            removed_ids=frozenset(removed),
            full_reload=full,
        )

    async def poll_once(self) -> FeedChange | None:
        """
        Fetch and merge one page. Returns the change, or None when nothing
        changed or the poll failed (the snapshot is untouched on failure).
        """
        full = not self._loaded or self._resync
        try:
            feed = await self._client.fetch_tickets(
                self.station,
                updated_after=None if full else self._cursor,
                limit=self.page_limit,
            )
        except TransientFeedFailure as e:
            self.consecutive_errors += 1
            self.last_error = str(e)
            logger.warning(
                "Station feed poll failed, keeping last snapshot",
                station=self.station,
                consecutive_errors=self.consecutive_errors,
                next_delay=self.next_delay(),
                error=str(e),
            )
            return None

        was_loaded = self._loaded
        self.consecutive_errors = 0
        self.last_error = None
        self._loaded = True
        self._resync = len(feed.tickets) >= self.page_limit
        if self._resync:
            logger.info("Feed page full, next poll reloads", station=self.station, limit=self.page_limit)
        now = _utc(feed.server_time)
        self.last_success_at = now

        change = self._apply(feed.tickets, full, now)
        if change is None:
            return None

        await self._notify(self._subscribers, change)
        if was_loaded and change.added_ids:
            fresh = [t for t in change.snapshot if t.id in change.added_ids]
            await self._notify(self._new_ticket_callbacks, fresh)
        return change

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        """Poll until ``stop()``; sleeps follow the backoff between polls."""
        self._stop.clear()
        logger.info("Station feed started", station=self.station)
        while not self._stop.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                continue
        logger.info("Station feed stopped", station=self.station)
