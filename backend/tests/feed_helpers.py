"""
Helpers for station feed tests: ticket payloads and a scripted API.
"""

from datetime import datetime, timedelta, timezone

import httpx

BASE_TIME = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


def at(seconds: float) -> str:
    return (BASE_TIME + timedelta(seconds=seconds)).isoformat()


def ticket_payload(
    ticket_id,
    status="NEW",
    station="KITCHEN",
    order_id=None,
    priority=0,
    created=0,
    updated=None,
    sibling=None,
):
    order_id = order_id or ticket_id
    return {
        "id": ticket_id,
        "order_id": order_id,
        "station": station,
        "status": status,
        "priority": priority,
        "created_at": at(created),
        "updated_at": at(created if updated is None else updated),
        "order_number": f"N-{order_id}",
        "order_status": "PENDING",
        "order_type": "DINE_IN",
        "table_number": 3,
        "items": [
            {"id": ticket_id * 10, "menu_title": "Soup", "quantity": 1, "status": "PENDING"},
        ],
        "sibling_ticket_status": sibling,
    }


class ScriptedFeedApi:
    """
    Serves queued responses for GET /api/kds/tickets and records requests.

    Queue entries are ticket lists, ``int`` status codes or exceptions.
    """

    def __init__(self, station="KITCHEN", server_time=60):
        self.station = station
        self.server_time = server_time
        self.responses = []
        self.requests: list[httpx.Request] = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if self.responses else []
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            return httpx.Response(response, json={"detail": "error"})
        if isinstance(response, str):
            return httpx.Response(200, text=response)
        return httpx.Response(
            200,
            json={"station": self.station, "tickets": response, "server_time": at(self.server_time)},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
