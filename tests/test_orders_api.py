"""Order endpoints end to end through the FastAPI app."""

import pytest


async def seed_customer_and_item(client) -> tuple[int, int]:
    customer = await client.post(
        "/api/customers",
        json={"name": "John Doe", "email": "john@example.com", "phone": "555-123-4567"},
    )
    item = await client.post(
        "/api/menu",
        json={"name": "Burger", "description": "Beef", "category": "mains", "price": 10.0, "cost": 4.0},
    )
    assert customer.status_code == 201
    assert item.status_code == 201
    return customer.json()["customer"]["id"], item.json()["menu_item"]["id"]


def order_json(customer_id: int, item_id: int, quantity: int = 2, **extra) -> dict:
    body = {
        "customer": customer_id,
        "order_type": "dine-in",
        "items": [{"menu_item": item_id, "quantity": quantity, "price": 10.0}],
    }
    body.update(extra)
    return body


async def test_create_order_returns_priced_order(client, users):
    customer_id, item_id = await seed_customer_and_item(client)

    response = await client.post("/api/orders", json=order_json(customer_id, item_id, table_number=4))

    assert response.status_code == 201
    order = response.json()["order"]
    assert order["order_number"].startswith("ORD-")
    assert order["subtotal"] == 20.0
    assert order["tax"] == 1.6
    assert order["total"] == 21.6
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["customer"]["id"] == customer_id
    assert order["staff"]["id"] == users["admin"].id
    assert order["items"][0]["menu_item"]["name"] == "Burger"
    assert order["discount"] == {"amount": 0.0, "reason": None}
    assert order["feedback"] is None

    customer = (await client.get(f"/api/customers/{customer_id}")).json()["customer"]
    assert customer["visits"] == 1
    assert customer["loyalty_points"] == 21
    assert customer["total_spent"] == pytest.approx(21.6)


async def test_unknown_customer_returns_404(client):
    _, item_id = await seed_customer_and_item(client)

    response = await client.post("/api/orders", json=order_json(9999, item_id))

    assert response.status_code == 404
    assert response.json() == {"message": "Customer not found"}


async def test_unavailable_item_returns_400(client):
    customer_id, item_id = await seed_customer_and_item(client)
    await client.patch(f"/api/menu/{item_id}/availability", json={"is_available": False})

    response = await client.post("/api/orders", json=order_json(customer_id, item_id))

    assert response.status_code == 400
    assert response.json() == {"message": "Some menu items are not available"}
    listing = await client.get("/api/orders")
    assert listing.json()["pagination"]["total"] == 0


async def test_validation_errors_are_listed_per_field(client):
    customer_id, item_id = await seed_customer_and_item(client)

    response = await client.post(
        "/api/orders",
        json={"customer": customer_id, "order_type": "drive-thru", "items": []},
    )

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"order_type", "items"} <= fields


async def test_missing_user_header_is_unauthorized(client):
    response = await client.get("/api/orders", headers={"X-User-Id": ""})

    assert response.status_code == 401
    assert "message" in response.json()


async def test_status_flow_and_invalid_transition(client):
    customer_id, item_id = await seed_customer_and_item(client)
    order_id = (await client.post("/api/orders", json=order_json(customer_id, item_id))).json()["order"]["id"]

    skipped = await client.put(f"/api/orders/{order_id}/status", json={"status": "completed"})
    assert skipped.status_code == 400
    assert skipped.json()["message"] == "Cannot change order status from 'pending' to 'completed'"

    for step in ("confirmed", "preparing", "ready", "served", "completed"):
        response = await client.put(f"/api/orders/{order_id}/status", json={"status": step})
        assert response.status_code == 200
        assert response.json()["order"]["status"] == step

    reopened = await client.put(f"/api/orders/{order_id}/status", json={"status": "pending"})
    assert reopened.status_code == 400


async def test_payment_with_tip_updates_total(client):
    customer_id, item_id = await seed_customer_and_item(client)
    order_id = (await client.post("/api/orders", json=order_json(customer_id, item_id))).json()["order"]["id"]

    response = await client.put(
        f"/api/orders/{order_id}/payment",
        json={"payment_status": "paid", "payment_method": "card", "tip": 5},
    )

    assert response.status_code == 200
    order = response.json()["order"]
    assert order["payment_status"] == "paid"
    assert order["payment_method"] == "card"
    assert order["tip"] == 5.0
    assert order["total"] == pytest.approx(26.6)


async def test_feedback_and_filters(client):
    customer_id, item_id = await seed_customer_and_item(client)
    first = (await client.post("/api/orders", json=order_json(customer_id, item_id))).json()["order"]
    await client.post("/api/orders", json=order_json(customer_id, item_id, order_type="takeout"))

    rated = await client.post(f"/api/orders/{first['id']}/feedback", json={"rating": 4, "comment": "Tasty"})
    takeout = await client.get("/api/orders", params={"order_type": "takeout"})
    paged = await client.get("/api/orders", params={"limit": 1, "page": 2})

    assert rated.status_code == 200
    assert rated.json()["order"]["feedback"]["rating"] == 4
    assert takeout.json()["pagination"]["total"] == 1
    assert paged.json()["pagination"] == {"current": 2, "pages": 2, "total": 2, "limit": 1}
    assert len(paged.json()["orders"]) == 1


async def test_stats_overview(client):
    customer_id, item_id = await seed_customer_and_item(client)
    await client.post("/api/orders", json=order_json(customer_id, item_id))

    response = await client.get("/api/orders/stats/overview")

    assert response.status_code == 200
    stats = response.json()["stats"]
    assert stats["overall"]["total_orders"] == 1
    assert stats["today"]["orders"] == 1


async def test_unknown_order_returns_404(client):
    response = await client.get("/api/orders/12345")

    assert response.status_code == 404
    assert response.json() == {"message": "Order not found"}
