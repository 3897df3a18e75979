"""
Display lookups for ticket statuses and the per-order station dots.

Everything here is pure and total: unknown or missing statuses degrade to a
neutral colour and the raw value as label, they are never an error on the
display path.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from html import escape
from typing import Any

from kds_shared.config.constants import DisplayStation, STATION_NAMES, TicketStatus
from kds_shared.config.logging import get_logger

logger = get_logger(__name__)

NEUTRAL_COLOR = "neutral-gray"

STATUS_COLORS: dict[str, str] = {
    TicketStatus.NEW: "blue",
    TicketStatus.IN_PROGRESS: "yellow",
    TicketStatus.COMPLETED: "green",
    TicketStatus.RECALLED: "orange",
    TicketStatus.CANCELLED: "gray",
}

STATUS_LABELS: dict[str, str] = {
    TicketStatus.NEW: "New",
    TicketStatus.IN_PROGRESS: "In Progress",
    TicketStatus.COMPLETED: "Done",
    TicketStatus.RECALLED: "Recalled",
    TicketStatus.CANCELLED: "Cancelled",
}

# CSS classes for the markup projection
_DOT_CLASSES: dict[str, str] = {
    "blue": "bg-blue-400",
    "yellow": "bg-yellow-400",
    "green": "bg-green-400",
    "orange": "bg-orange-400",
    "gray": "bg-gray-400",
}
_NEUTRAL_DOT_CLASS = "bg-gray-300"


def _known(status: Any) -> str | None:
    if isinstance(status, str) and status in STATUS_COLORS:
        return status
    if status is not None:
        logger.debug("Unknown ticket status on display path", status=status)
    return None


def ticket_status_color(status: Any) -> str:
    """Colour token for a ticket status; ``neutral-gray`` for anything unknown."""
    known = _known(status)
    return STATUS_COLORS[known] if known else NEUTRAL_COLOR


def ticket_status_label(status: Any) -> str:
    """Human label for a ticket status; unknown values are returned unchanged."""
    known = _known(status)
    if known:
        return STATUS_LABELS[known]
    if status is None:
        return ""
    return str(status)


@dataclass(frozen=True)
class TicketDot:
    """One station indicator of the order summary."""

    station: str
    status: str
    color: str
    title: str
    ring: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "station": self.station,
            "status": self.status,
            "color": self.color,
            "title": self.title,
            "ring": self.ring,
        }


def _field(ticket: Any, name: str) -> Any:
    if isinstance(ticket, Mapping):
        return ticket.get(name)
    return getattr(ticket, name, None)


def build_ticket_dots(tickets: Iterable[Any] | None) -> list[TicketDot]:
    """
    Summarise an order's station tickets as at most two dots.

    ``tickets`` may hold mappings, ORM rows or schema objects exposing
    ``station`` and ``status``. Kitchen always precedes bar whatever the input
    order; a station without a ticket gets no dot; the bar dot carries a ring
    so the two remain distinguishable at a glance.
    """
    if not tickets:
        return []

    by_station: dict[str, Any] = {}
    for ticket in tickets:
        station = _field(ticket, "station")
        if station in DisplayStation.ALL and station not in by_station:
            by_station[station] = _field(ticket, "status")

    dots: list[TicketDot] = []
    for station in DisplayStation.ALL:
        if station not in by_station:
            continue
        status = by_station[station]
        dots.append(
            TicketDot(
                station=station,
                status="" if status is None else str(status),
                color=ticket_status_color(status),
                title=f"{STATION_NAMES[station]}: {ticket_status_label(status)}",
                ring=station == DisplayStation.BAR,
            )
        )
    return dots


def render_ticket_dots_html(tickets: Iterable[Any] | None) -> str:
    """Markup for the order-row indicator; empty string when there are no dots."""
    dots = build_ticket_dots(tickets)
    if not dots:
        return ""

    spans = []
    for dot in dots:
        classes = ["inline-block", "h-2", "w-2", "rounded-full", _DOT_CLASSES.get(dot.color, _NEUTRAL_DOT_CLASS)]
        if dot.ring:
            classes.append("ring-1")
        title = escape(dot.title, quote=True)
        spans.append(f'<span class="{" ".join(classes)}" title="{title}"></span>')
    return f'<span class="inline-flex items-center gap-1">{"".join(spans)}</span>'
