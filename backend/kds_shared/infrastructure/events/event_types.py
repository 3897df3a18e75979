"""
Event Type Constants.

Event types published on the station and order channels.
"""

# =============================================================================
# Ticket lifecycle events
# Flow: NEW → IN_PROGRESS → COMPLETED (RECALLED / CANCELLED on the side)
# =============================================================================

TICKETS_CREATED = "TICKETS_CREATED"  # Fan-out created one or more station tickets
TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
TICKET_ITEM_UPDATED = "TICKET_ITEM_UPDATED"
TICKET_PRIORITY_CHANGED = "TICKET_PRIORITY_CHANGED"

# =============================================================================
# Order events
# =============================================================================

ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"  # Reconciliation moved the order

ALL_EVENT_TYPES = frozenset({
    TICKETS_CREATED,
    TICKET_STATUS_CHANGED,
    TICKET_ITEM_UPDATED,
    TICKET_PRIORITY_CHANGED,
    ORDER_STATUS_CHANGED,
})

# Events larger than this are rejected before reaching Redis
MAX_EVENT_SIZE = 64 * 1024
