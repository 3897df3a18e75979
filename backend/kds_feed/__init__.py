"""
Station display client: polled feed, backoff and aggregate order dots.
"""

from .aggregate import OrderDotsTracker
from .backoff import PollBackoff
from .client import TicketFeedClient, TransientFeedFailure
from .feed import FeedChange, Lanes, StationFeed, sort_tickets

__all__ = [
    "FeedChange",
    "Lanes",
    "OrderDotsTracker",
    "PollBackoff",
    "StationFeed",
    "TicketFeedClient",
    "TransientFeedFailure",
    "sort_tickets",
]
