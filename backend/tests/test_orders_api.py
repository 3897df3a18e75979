"""
Tests for order placement, lookup, per-order tickets and the dots indicator.
"""

from unittest.mock import patch

from kds_shared.utils.exceptions import DatabaseError
from kds_api.models import KitchenTicket, Order
from kds_api.services.domain.fanout_service import FanoutService


def _place(client, headers, menu, order_number="W-1", lines=("steak", "negroni"), **fields):
    body = {
        "order_number": order_number,
        "table_number": 7,
        "user_name": "Ana",
        "user_email": "ana@example.com",
        "items": [{"menu_item_id": menu[name], "quantity": 2} for name in lines],
        **fields,
    }
    return client.post("/api/orders", json=body, headers=headers)


class TestPlaceOrder:

    def test_place_order_fans_out(self, client, waiter_headers, menu, published_events):
        response = _place(client, waiter_headers, menu)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["order_type"] == "DINE_IN"
        assert data["ticket_statuses"] == {"KITCHEN": "NEW", "BAR": "NEW"}
        assert [i["menu_title"] for i in data["items"]] == ["Steak Frites", "Negroni"]
        assert data["items"][0]["category"] == "Mains"
        assert data["items"][0]["unit_price_cents"] == 2900

        types = [call.args[2].type for call in published_events.call_args_list]
        assert types.count("TICKETS_CREATED") == 4

    def test_same_order_number_is_idempotent(self, client, waiter_headers, menu, db_session):
        first = _place(client, waiter_headers, menu)
        second = _place(client, waiter_headers, menu, lines=("cake",))

        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert len(second.json()["items"]) == 2
        assert db_session.query(Order).count() == 1

    def test_replay_completes_failed_fan_out(self, client, waiter_headers, menu, published_events):
        with patch.object(FanoutService, "fan_out", side_effect=DatabaseError("fan-out")):
            first = _place(client, waiter_headers, menu)
        assert first.status_code == 500

        replay = _place(client, waiter_headers, menu)

        assert replay.status_code == 200
        assert replay.json()["ticket_statuses"] == {"KITCHEN": "NEW", "BAR": "NEW"}
        assert "TICKETS_CREATED" in [call.args[2].type for call in published_events.call_args_list]

    def test_replay_does_not_duplicate_tickets(self, client, waiter_headers, menu, db_session):
        _place(client, waiter_headers, menu)
        _place(client, waiter_headers, menu)
        assert db_session.query(KitchenTicket).count() == 2

    def test_bar_only_order(self, client, waiter_headers, menu):
        response = _place(client, waiter_headers, menu, order_number="B-1", lines=("negroni",))
        assert response.json()["ticket_statuses"] == {"BAR": "NEW"}

    def test_delivery_order_type(self, client, waiter_headers, menu):
        response = _place(
            client, waiter_headers, menu, order_number="D-1", table_number=None,
            delivery_address="1 Main St",
        )
        assert response.json()["order_type"] == "DELIVERY"

    def test_unavailable_menu_item(self, client, waiter_headers, menu):
        response = _place(client, waiter_headers, menu, lines=("sold_out",))
        assert response.status_code == 400

    def test_unknown_menu_item(self, client, waiter_headers, menu):
        response = client.post(
            "/api/orders",
            json={"order_number": "X-1", "items": [{"menu_item_id": 9999}]},
            headers=waiter_headers,
        )
        assert response.status_code == 400

    def test_empty_order_rejected(self, client, waiter_headers, menu):
        response = client.post(
            "/api/orders", json={"order_number": "X-2", "items": []}, headers=waiter_headers
        )
        assert response.status_code == 422

    def test_requires_auth(self, client, menu):
        assert _place(client, {}, menu).status_code == 401


class TestOrderViews:

    def test_get_order(self, client, waiter_headers, menu):
        order_id = _place(client, waiter_headers, menu).json()["id"]
        response = client.get(f"/api/orders/{order_id}", headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["order_number"] == "W-1"

    def test_get_missing_order(self, client, waiter_headers, menu):
        assert client.get("/api/orders/999", headers=waiter_headers).status_code == 404

    def test_order_tickets_kitchen_first(self, client, waiter_headers, menu):
        order_id = _place(client, waiter_headers, menu).json()["id"]
        response = client.get(f"/api/orders/{order_id}/tickets", headers=waiter_headers)
        assert [t["station"] for t in response.json()] == ["KITCHEN", "BAR"]

    def test_ticket_dots(self, client, waiter_headers, chef_headers, menu):
        order_id = _place(client, waiter_headers, menu).json()["id"]
        tickets = client.get(f"/api/orders/{order_id}/tickets", headers=waiter_headers).json()
        bar_id = tickets[1]["id"]
        client.post(f"/api/kds/tickets/{bar_id}/bump", headers=chef_headers)

        response = client.get(f"/api/orders/{order_id}/ticket-dots", headers=waiter_headers)

        assert response.status_code == 200
        data = response.json()
        assert [(d["station"], d["color"], d["ring"]) for d in data["dots"]] == [
            ("KITCHEN", "blue", False),
            ("BAR", "yellow", True),
        ]
        assert 'title="Kitchen: New"' in data["html"]

    def test_dots_for_order_without_tickets(self, client, waiter_headers, db_session):
        order = Order(order_number="EMPTY")
        db_session.add(order)
        db_session.commit()

        data = client.get(f"/api/orders/{order.id}/ticket-dots", headers=waiter_headers).json()
        assert data["dots"] == []
        assert data["html"] == ""


class TestFanoutEndpoint:

    def test_rerun_fanout_is_noop(self, client, chef_headers, waiter_headers, menu):
        order_id = _place(client, waiter_headers, menu).json()["id"]

        response = client.post(f"/api/orders/{order_id}/fan-out", headers=chef_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["created"] == []
        assert data["existing"] == ["KITCHEN", "BAR"]
        assert len(data["tickets"]) == 2

    def test_fanout_unfanned_order(self, client, chef_headers, mixed_order):
        response = client.post(f"/api/orders/{mixed_order}/fan-out", headers=chef_headers)
        assert response.json()["created"] == ["KITCHEN", "BAR"]
        assert response.json()["order_status"] == "PENDING"

    def test_waiter_cannot_fan_out(self, client, waiter_headers, mixed_order):
        response = client.post(f"/api/orders/{mixed_order}/fan-out", headers=waiter_headers)
        assert response.status_code == 403
