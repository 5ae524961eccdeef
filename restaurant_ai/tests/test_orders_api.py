from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from restaurant_ai.errors import ConflictError
from restaurant_ai.orders.service import _unique_order_number


def _item_id(client, name):
    body = client.get("/api/menu/search/query", params={"q": name}).json()
    return next(i["id"] for i in body["data"] if i["name"] == name)


def _order_payload(client, **overrides):
    payload = {
        "customer": {"name": "Ada Lovelace", "phone": "5551234567", "email": "Ada@Example.com"},
        "items": [
            {"menu_item_id": _item_id(client, "Beef Burger"), "quantity": 2},
            {"menu_item_id": _item_id(client, "Iced Latte"), "quantity": 1},
        ],
        "order_type": "takeaway",
        "tip": 3.0,
    }
    payload.update(overrides)
    return payload


def _place(client, **overrides):
    resp = client.post("/api/orders", json=_order_payload(client, **overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_order_computes_totals_and_snapshot(seeded_client):
    order = _place(seeded_client)

    assert re.fullmatch(r"ORD240315\d{3}", order["order_number"])
    assert order["status"] == "pending"
    assert order["subtotal"] == pytest.approx(2 * 16.99 + 4.99)
    assert order["tax"] == pytest.approx(round((2 * 16.99 + 4.99) * 0.08, 2))
    assert order["total"] == pytest.approx(round(order["subtotal"] + order["tax"] + 3.0, 2))
    burger = order["items"][0]
    assert burger["name"] == "Beef Burger"
    assert burger["category"] == "main"
    assert "Beef Patty" in burger["ingredients"]
    assert order["customer"]["email"] == "ada@example.com"


def test_create_order_increments_popularity(seeded_client):
    burger_id = _item_id(seeded_client, "Beef Burger")
    _place(seeded_client)

    item = seeded_client.get(f"/api/menu/{burger_id}").json()["data"]
    assert item["popularity"] == 1


def test_create_order_unknown_item_is_404(seeded_client):
    resp = seeded_client.post(
        "/api/orders",
        json=_order_payload(seeded_client, items=[{"menu_item_id": "missing", "quantity": 1}]),
    )

    assert resp.status_code == 404
    assert resp.json()["error"] == "Menu item not found"


def test_create_order_unavailable_item_is_400(seeded_client):
    payload = _order_payload(seeded_client)
    burger_id = payload["items"][0]["menu_item_id"]
    seeded_client.patch(f"/api/menu/{burger_id}/availability", json={"availability": "limited"})

    resp = seeded_client.post("/api/orders", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"] == 'Menu item "Beef Burger" is not available'


def test_dine_in_requires_table_number(seeded_client):
    resp = seeded_client.post("/api/orders", json=_order_payload(seeded_client, order_type="dine-in"))

    assert resp.status_code == 400
    assert any("table_number is required" in d for d in resp.json()["details"])


def test_delivery_requires_address(seeded_client):
    resp = seeded_client.post("/api/orders", json=_order_payload(seeded_client, order_type="delivery"))

    assert resp.status_code == 400
    assert any("delivery_address is required" in d for d in resp.json()["details"])


def test_table_number_forbidden_for_takeaway(seeded_client):
    resp = seeded_client.post("/api/orders", json=_order_payload(seeded_client, table_number=4))

    assert resp.status_code == 400


def test_order_needs_items_and_valid_tip(seeded_client):
    empty = seeded_client.post("/api/orders", json=_order_payload(seeded_client, items=[]))
    big_tip = seeded_client.post("/api/orders", json=_order_payload(seeded_client, tip=150))

    assert empty.status_code == 400
    assert big_tip.status_code == 400


def test_get_order_by_id_and_number(seeded_client):
    order = _place(seeded_client)

    by_id = seeded_client.get(f"/api/orders/{order['id']}").json()["data"]
    by_number = seeded_client.get(f"/api/orders/number/{order['order_number']}").json()["data"]

    assert by_id["id"] == by_number["id"] == order["id"]
    assert seeded_client.get("/api/orders/nope").status_code == 404
    assert seeded_client.get("/api/orders/number/ORD000000000").status_code == 404


def test_list_orders_filters_and_paginates(seeded_client):
    _place(seeded_client)
    _place(seeded_client, customer={"name": "Grace Hopper", "phone": "5559876543"})
    _place(
        seeded_client,
        order_type="dine-in",
        table_number=7,
        customer={"name": "Grace Hopper", "phone": "5559876543"},
    )

    everything = seeded_client.get("/api/orders", params={"limit": 2}).json()
    grace = seeded_client.get("/api/orders", params={"customer_phone": "5559876543"}).json()
    dine_in = seeded_client.get("/api/orders", params={"order_type": "dine-in"}).json()

    assert everything["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert len(everything["data"]) == 2
    assert grace["pagination"]["total"] == 2
    assert [o["table_number"] for o in dine_in["data"]] == [7]


def test_orders_by_customer_identifier(seeded_client):
    _place(seeded_client)
    _place(seeded_client, customer={"name": "Grace Hopper", "phone": "5559876543"})

    by_phone = seeded_client.get("/api/orders/customer/5551234567").json()
    by_email = seeded_client.get("/api/orders/customer/ada@example.com").json()

    assert by_phone["count"] == 1
    assert by_email["count"] == 1
    assert by_phone["data"][0]["id"] == by_email["data"][0]["id"]


def test_status_transitions_set_delivery_times(seeded_client):
    order = _place(seeded_client)

    preparing = seeded_client.patch(
        f"/api/orders/{order['id']}/status", json={"status": "preparing"}
    ).json()["data"]
    ready = seeded_client.patch(
        f"/api/orders/{order['id']}/status", json={"status": "ready", "notes": "Bag 3"}
    ).json()["data"]

    assert preparing["estimated_delivery_time"].startswith("2024-03-15T12:30:00")
    assert ready["actual_delivery_time"].startswith("2024-03-15T12:00:00")
    assert ready["notes"] == "Bag 3"


def test_orders_by_status(seeded_client):
    first = _place(seeded_client)
    _place(seeded_client)
    seeded_client.patch(f"/api/orders/{first['id']}/status", json={"status": "confirmed"})

    body = seeded_client.get("/api/orders/status/confirmed").json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == first["id"]


def test_update_order_details(seeded_client):
    order = _place(seeded_client)

    resp = seeded_client.put(
        f"/api/orders/{order['id']}", json={"priority": "urgent", "assigned_to": "Chef Sam"}
    )

    data = resp.json()["data"]
    assert data["priority"] == "urgent"
    assert data["assigned_to"] == "Chef Sam"


def test_add_and_remove_items_recalculate_totals(seeded_client):
    order = _place(seeded_client)
    fries_id = _item_id(seeded_client, "French Fries")

    added = seeded_client.post(
        f"/api/orders/{order['id']}/items", json={"menu_item_id": fries_id, "quantity": 1}
    ).json()["data"]
    removed = seeded_client.delete(f"/api/orders/{order['id']}/items/0").json()["data"]

    assert len(added["items"]) == 3
    assert added["subtotal"] == pytest.approx(order["subtotal"] + 5.99)
    assert [i["name"] for i in removed["items"]] == ["Iced Latte", "French Fries"]
    assert removed["subtotal"] == pytest.approx(4.99 + 5.99)


def test_remove_item_bad_index(seeded_client):
    order = _place(seeded_client)

    resp = seeded_client.delete(f"/api/orders/{order['id']}/items/9")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid item index"


def test_items_locked_once_not_pending(seeded_client):
    order = _place(seeded_client)
    seeded_client.patch(f"/api/orders/{order['id']}/status", json={"status": "confirmed"})

    resp = seeded_client.delete(f"/api/orders/{order['id']}/items/0")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot modify order that is not pending"


def test_cancel_order(seeded_client):
    order = _place(seeded_client)

    resp = seeded_client.patch(f"/api/orders/{order['id']}/cancel", json={"reason": "Changed mind"})

    data = resp.json()["data"]
    assert data["status"] == "cancelled"
    assert data["notes"] == "Changed mind"


def test_cannot_cancel_delivered_order(seeded_client):
    order = _place(seeded_client)
    seeded_client.patch(f"/api/orders/{order['id']}/status", json={"status": "delivered"})

    resp = seeded_client.patch(f"/api/orders/{order['id']}/cancel")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot cancel delivered order"


def test_stats_summary(seeded_client):
    first = _place(seeded_client)
    second = _place(seeded_client)
    seeded_client.patch(f"/api/orders/{second['id']}/status", json={"status": "confirmed"})

    stats = seeded_client.get("/api/orders/stats/summary").json()["data"]

    assert stats["total_orders"] == 2
    assert stats["total_revenue"] == pytest.approx(first["total"] + second["total"])
    assert stats["status_breakdown"] == {"pending": 1, "confirmed": 1}


def test_stats_summary_empty(client):
    stats = client.get("/api/orders/stats/summary").json()["data"]

    assert stats["total_orders"] == 0
    assert stats["status_breakdown"] == {}


def test_kitchen_display_orders_by_priority_then_age(seeded_client):
    normal = _place(seeded_client)
    urgent = _place(seeded_client)
    pending = _place(seeded_client)
    for order in (normal, urgent):
        seeded_client.patch(f"/api/orders/{order['id']}/status", json={"status": "confirmed"})
    seeded_client.put(f"/api/orders/{urgent['id']}", json={"priority": "urgent"})

    body = seeded_client.get("/api/orders/kitchen/display").json()

    ids = [o["id"] for o in body["data"]]
    assert ids == [urgent["id"], normal["id"]]
    assert pending["id"] not in ids


def test_order_number_takes_last_free_slot(order_store, monkeypatch):
    taken = {f"ORD240315{n:03d}" for n in range(1000)} - {"ORD240315417"}
    monkeypatch.setattr(order_store, "order_numbers", lambda: taken)

    number = _unique_order_number(order_store, datetime(2024, 3, 15, tzinfo=timezone.utc))

    assert number == "ORD240315417"


def test_order_number_exhausted_for_the_day(order_store, monkeypatch):
    taken = {f"ORD240315{n:03d}" for n in range(1000)}
    monkeypatch.setattr(order_store, "order_numbers", lambda: taken)

    with pytest.raises(ConflictError):
        _unique_order_number(order_store, datetime(2024, 3, 15, tzinfo=timezone.utc))


def test_create_order_when_numbers_exhausted_is_409(seeded_client, order_store, monkeypatch):
    payload = _order_payload(seeded_client)
    taken = {f"ORD240315{n:03d}" for n in range(1000)}
    monkeypatch.setattr(order_store, "order_numbers", lambda: taken)

    resp = seeded_client.post("/api/orders", json=payload)

    assert resp.status_code == 409
    assert resp.json() == {"success": False, "error": "No order numbers left for 2024-03-15"}
