"""
Centralized constants for the backend application.
Avoids magic strings for roles, stations and statuses.

Usage:
    from kds_shared.config.constants import TicketStatus, KITCHEN_STAFF_ROLES

    if status == TicketStatus.NEW:
        ...

The string values are the persisted/wire representation and must not change.
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants."""

    ADMIN: Final[str] = "ADMIN"
    MANAGER: Final[str] = "MANAGER"
    CHEF: Final[str] = "CHEF"
    BARTENDER: Final[str] = "BARTENDER"
    WAITER: Final[str] = "WAITER"


# Role groups for common access patterns
MANAGEMENT_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.MANAGER})
KITCHEN_STAFF_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.MANAGER, Roles.CHEF, Roles.BARTENDER}
)
ORDER_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.MANAGER, Roles.WAITER, Roles.CHEF, Roles.BARTENDER}
)


# =============================================================================
# Stations
# =============================================================================


class DisplayStation:
    """Preparation stations. Each has its own display and ticket queue."""

    KITCHEN: Final[str] = "KITCHEN"
    BAR: Final[str] = "BAR"

    # Display order: kitchen always precedes bar
    ALL: Final[list[str]] = [KITCHEN, BAR]

    DEFAULT: Final[str] = KITCHEN


STATION_NAMES: Final[dict[str, str]] = {
    DisplayStation.KITCHEN: "Kitchen",
    DisplayStation.BAR: "Bar",
}


def sibling_station(station: str) -> str:
    """Return the other station of a two-station order."""
    return DisplayStation.BAR if station == DisplayStation.KITCHEN else DisplayStation.KITCHEN


# =============================================================================
# Entity Status Constants
# =============================================================================


class TicketStatus:
    """Kitchen/bar ticket status constants."""

    NEW: Final[str] = "NEW"
    IN_PROGRESS: Final[str] = "IN_PROGRESS"
    COMPLETED: Final[str] = "COMPLETED"
    RECALLED: Final[str] = "RECALLED"
    CANCELLED: Final[str] = "CANCELLED"

    ALL: Final[list[str]] = [NEW, IN_PROGRESS, COMPLETED, RECALLED, CANCELLED]
    TERMINAL: Final[frozenset[str]] = frozenset({COMPLETED, CANCELLED})
    ACTIVE: Final[list[str]] = [NEW, IN_PROGRESS, RECALLED]


class TicketItemStatus:
    """Status of an individual item within a ticket."""

    PENDING: Final[str] = "PENDING"
    IN_PROGRESS: Final[str] = "IN_PROGRESS"
    DONE: Final[str] = "DONE"
    CANCELLED: Final[str] = "CANCELLED"

    ALL: Final[list[str]] = [PENDING, IN_PROGRESS, DONE, CANCELLED]
    OPEN: Final[list[str]] = [PENDING, IN_PROGRESS]


class OrderStatus:
    """Order status constants."""

    PENDING: Final[str] = "PENDING"
    PREPARING: Final[str] = "PREPARING"
    READY: Final[str] = "READY"
    SERVED: Final[str] = "SERVED"
    COLLECTED: Final[str] = "COLLECTED"
    UNASSIGNED: Final[str] = "UNASSIGNED"
    DELIVERED: Final[str] = "DELIVERED"
    COMPLETED: Final[str] = "COMPLETED"
    CANCELLED: Final[str] = "CANCELLED"

    # States the kitchen/bar reconciliation is allowed to overwrite
    KITCHEN_MANAGED: Final[frozenset[str]] = frozenset({PENDING, PREPARING, READY})


class OrderType:
    """Derived order type shown on ticket cards."""

    DINE_IN: Final[str] = "DINE_IN"
    DELIVERY: Final[str] = "DELIVERY"
    TAKEAWAY: Final[str] = "TAKEAWAY"


# =============================================================================
# Ticket state machine
# =============================================================================


TICKET_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    TicketStatus.NEW: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
    TicketStatus.IN_PROGRESS: frozenset(
        {TicketStatus.COMPLETED, TicketStatus.RECALLED, TicketStatus.CANCELLED}
    ),
    TicketStatus.RECALLED: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
    TicketStatus.COMPLETED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}

# Forward path used by the display "bump" button
BUMP_TARGETS: Final[dict[str, str]] = {
    TicketStatus.NEW: TicketStatus.IN_PROGRESS,
    TicketStatus.IN_PROGRESS: TicketStatus.COMPLETED,
    TicketStatus.RECALLED: TicketStatus.IN_PROGRESS,
}


def can_transition(current: str | None, target: str | None) -> bool:
    """Check whether a ticket may move from ``current`` to ``target``."""
    return target in TICKET_TRANSITIONS.get(current, frozenset())


def is_terminal(status: str | None) -> bool:
    """COMPLETED and CANCELLED tickets accept no further transitions."""
    return status in TicketStatus.TERMINAL


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Pagination and input limits."""

    DEFAULT_PAGE_SIZE: Final[int] = 100
    MAX_PAGE_SIZE: Final[int] = 500
    MAX_ORDER_ITEMS: Final[int] = 100
    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_PRIORITY: Final[int] = 9


# =============================================================================
# Validation Functions
# =============================================================================


def validate_station(station: str) -> bool:
    """Validate that a station is known."""
    return station in DisplayStation.ALL


def validate_ticket_status(status: str) -> bool:
    """Validate that a ticket status is valid."""
    return status in TicketStatus.ALL


def validate_ticket_item_status(status: str) -> bool:
    """Validate that a ticket item status is valid."""
    return status in TicketItemStatus.ALL
