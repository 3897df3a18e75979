"""
Tests for the aggregate order dots derived from station feeds.
"""

import pytest

from kds_feed import OrderDotsTracker, StationFeed, TicketFeedClient
from tests.feed_helpers import ScriptedFeedApi, ticket_payload


def _feed(api):
    client = TicketFeedClient(base_url="http://kds.test", transport=api.transport)
    return StationFeed(client, api.station)


def _summary(dots):
    return [(d.station, d.status) for d in dots]


class TestOrderDotsTracker:

    @pytest.mark.asyncio
    async def test_single_feed_uses_sibling_status(self):
        api = ScriptedFeedApi("BAR").queue([ticket_payload(1, station="BAR", order_id=7, sibling="IN_PROGRESS")])
        feed = _feed(api)
        tracker = OrderDotsTracker()
        tracker.attach(feed)

        await feed.poll_once()

        assert _summary(tracker.dots(7)) == [("KITCHEN", "IN_PROGRESS"), ("BAR", "NEW")]

    @pytest.mark.asyncio
    async def test_missing_station_is_valid(self):
        api = ScriptedFeedApi("BAR").queue([ticket_payload(1, station="BAR", order_id=7)])
        feed = _feed(api)
        tracker = OrderDotsTracker()
        tracker.attach(feed)

        await feed.poll_once()

        assert _summary(tracker.dots(7)) == [("BAR", "NEW")]
        assert tracker.dots(99) == []

    @pytest.mark.asyncio
    async def test_own_status_beats_sibling_hint(self):
        kitchen_api = ScriptedFeedApi("KITCHEN").queue(
            [ticket_payload(1, station="KITCHEN", order_id=7, status="COMPLETED", updated=5, sibling="NEW")]
        )
        bar_api = ScriptedFeedApi("BAR").queue(
            [ticket_payload(2, station="BAR", order_id=7, status="IN_PROGRESS", sibling="IN_PROGRESS")]
        )
        kitchen, bar = _feed(kitchen_api), _feed(bar_api)
        tracker = OrderDotsTracker()
        tracker.attach(kitchen)
        tracker.attach(bar)

        await kitchen.poll_once()
        await bar.poll_once()

        assert _summary(tracker.dots(7)) == [("KITCHEN", "COMPLETED"), ("BAR", "IN_PROGRESS")]

    @pytest.mark.asyncio
    async def test_only_changed_orders_are_recomputed(self):
        api = ScriptedFeedApi("KITCHEN").queue(
            [ticket_payload(1, order_id=7), ticket_payload(2, order_id=8)],
            [ticket_payload(1, order_id=7, status="IN_PROGRESS", updated=30)],
        )
        feed = _feed(api)
        tracker = OrderDotsTracker()
        tracker.attach(feed)
        updates = []
        tracker.subscribe(lambda order_id, dots: updates.append((order_id, _summary(dots))))

        await feed.poll_once()
        assert sorted(u[0] for u in updates) == [7, 8]
        updates.clear()

        await feed.poll_once()
        assert updates == [(7, [("KITCHEN", "IN_PROGRESS")])]

    @pytest.mark.asyncio
    async def test_pruned_ticket_clears_dots(self):
        # Cancelled ticket past retention on the next full view of the feed
        api = ScriptedFeedApi("KITCHEN", server_time=3600).queue(
            [ticket_payload(1, order_id=7, status="CANCELLED", updated=3590)],
        )
        feed = _feed(api)
        tracker = OrderDotsTracker()
        tracker.attach(feed)
        await feed.poll_once()
        assert _summary(tracker.dots(7)) == [("KITCHEN", "CANCELLED")]

        api.server_time = 4000
        api.queue([ticket_payload(2, order_id=8, created=3990)])
        await feed.poll_once()

        assert tracker.dots(7) == []
        assert _summary(tracker.dots(8)) == [("KITCHEN", "NEW")]

    @pytest.mark.asyncio
    async def test_detach(self):
        api = ScriptedFeedApi("KITCHEN").queue([ticket_payload(1, order_id=7)])
        feed = _feed(api)
        tracker = OrderDotsTracker()
        tracker.attach(feed)
        tracker.detach_all()

        await feed.poll_once()
        assert tracker.dots(7) == []
