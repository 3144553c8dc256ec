from decimal import Decimal

from pizzeria_orders.auth import Actor
from pizzeria_orders.schemas import Role

from .conftest import auth_headers

ORDER_BODY = {
    "items": [
        {"id": 1, "name": "Margherita", "unitPrice": 10, "quantity": 2, "specialInstructions": "well done"},
        {"id": 2, "name": "Garlic bread", "unitPrice": 5, "quantity": 1},
    ],
    "payment_method": "credit_card",
    "address": "12 Baker Street",
}


def place(client, actor, body=None):
    response = client.post("/orders", json=body or ORDER_BODY, headers=auth_headers(actor))
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_create_order(client, customer, channel):
    order = place(client, customer)

    assert Decimal(order["subtotal"]) == Decimal("25")
    assert Decimal(order["delivery_fee"]) == Decimal("3.99")
    assert Decimal(order["total"]) == Decimal("28.99")
    assert order["status"] == "pending"
    assert order["owner_id"] == customer.id
    assert order["items"][0]["unitPrice"] in ("10", "10.00", 10)
    assert order["items"][0]["specialInstructions"] == "well done"
    assert [n.type for n in channel.sent] == ["order_created"]


def test_client_supplied_totals_are_ignored(client, customer):
    body = dict(ORDER_BODY, total="1.00", status="delivered")

    order = place(client, customer, body)

    assert Decimal(order["total"]) == Decimal("28.99")
    assert order["status"] == "pending"


def test_create_pickup_order(client, customer):
    body = dict(ORDER_BODY, address=None, pickup=True)

    order = place(client, customer, body)

    assert order["address"] == "pickup"
    assert Decimal(order["delivery_fee"]) == 0
    assert Decimal(order["total"]) == Decimal("25")


def test_create_order_validation_errors(client, customer):
    headers = auth_headers(customer)
    bad_quantity = dict(ORDER_BODY, items=[{"id": 1, "name": "Margherita", "unitPrice": 10, "quantity": 0}])
    bad_payment = dict(ORDER_BODY, payment_method="bitcoin")
    no_items = dict(ORDER_BODY, items=[])
    no_address = dict(ORDER_BODY, address=None)

    for body in (bad_quantity, bad_payment, no_items, no_address):
        response = client.post("/orders", json=body, headers=headers)
        assert response.status_code == 400, body
        assert "detail" in response.json()


def test_create_order_requires_authentication(client):
    response = client.post("/orders", json=ORDER_BODY)

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_is_unauthenticated(client):
    response = client.get("/orders", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_list_orders_scoped_by_role(client, customer, other_customer, admin):
    mine = place(client, customer)
    theirs = place(client, other_customer)

    own = client.get("/orders", headers=auth_headers(customer)).json()
    everything = client.get("/orders", headers=auth_headers(admin)).json()

    assert [o["id"] for o in own] == [mine["id"]]
    assert {o["id"] for o in everything} == {mine["id"], theirs["id"]}


def test_get_order_access(client, customer, other_customer, admin):
    order = place(client, customer)
    url = f"/orders/{order['id']}"

    assert client.get(url, headers=auth_headers(customer)).status_code == 200
    assert client.get(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url, headers=auth_headers(other_customer)).status_code == 403
    assert client.get(url).status_code == 401
    assert client.get("/orders/9999", headers=auth_headers(customer)).status_code == 404
    assert client.get("/orders/abc", headers=auth_headers(customer)).status_code == 400


def test_admin_updates_status(client, customer, admin, channel):
    order = place(client, customer)
    channel.sent.clear()

    response = client.put(
        f"/orders/{order['id']}/status", json={"status": "preparing"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "preparing"
    assert Decimal(body["total"]) == Decimal(body["subtotal"]) + Decimal(body["delivery_fee"])
    assert [n.type for n in channel.sent] == ["order_status_updated"]


def test_status_update_errors(client, customer, admin):
    order = place(client, customer)
    url = f"/orders/{order['id']}/status"

    assert client.put(url, json={"status": "preparing"}, headers=auth_headers(customer)).status_code == 403
    assert client.put(url, json={"status": "preparing"}).status_code == 401
    assert client.put(url, json={"status": "shipped"}, headers=auth_headers(admin)).status_code == 400
    assert client.put("/orders/9999/status", json={"status": "preparing"}, headers=auth_headers(admin)).status_code == 404


def test_delivered_order_cannot_go_back(client, customer, admin):
    order = place(client, customer)
    url = f"/orders/{order['id']}/status"
    client.put(url, json={"status": "delivered"}, headers=auth_headers(admin))

    response = client.put(url, json={"status": "pending"}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert "delivered" in response.json()["detail"]


def test_repeated_status_update_notifies_once(client, customer, admin, channel):
    order = place(client, customer)
    url = f"/orders/{order['id']}/status"
    channel.sent.clear()

    for _ in range(3):
        assert client.put(url, json={"status": "in_transit"}, headers=auth_headers(admin)).status_code == 200

    assert len(channel.sent) == 1


def test_timeline(client, customer, other_customer, admin):
    order = place(client, customer)
    url = f"/orders/{order['id']}"
    client.put(f"{url}/status", json={"status": "preparing"}, headers=auth_headers(admin))

    events = client.get(f"{url}/timeline", headers=auth_headers(customer)).json()

    assert [e["event_type"] for e in events] == ["created", "status_changed"]
    assert events[1]["new_value"] == "preparing"
    assert client.get(f"{url}/timeline", headers=auth_headers(other_customer)).status_code == 403


def test_hard_delete(client, customer, admin, admin_master):
    order = place(client, customer)
    url = f"/orders/{order['id']}"

    assert client.delete(url, headers=auth_headers(customer)).status_code == 403
    assert client.delete(url, headers=auth_headers(admin)).status_code == 403
    assert client.delete(url).status_code == 401

    response = client.delete(url, headers=auth_headers(admin_master))

    assert response.status_code == 204
    assert client.get(url, headers=auth_headers(admin)).status_code == 404
    assert client.delete(url, headers=auth_headers(admin_master)).status_code == 404

    logs = client.get("/admin/logs", headers=auth_headers(admin)).json()
    assert logs[0]["action"] == "delete_order"
    assert logs[0]["entity_id"] == str(order["id"])


def test_admin_stats(client, customer, admin):
    place(client, customer)
    place(client, customer)

    response = client.get("/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_orders"] == 2
    assert stats["active_orders"] == 2
    assert Decimal(stats["total_revenue"]) == Decimal("57.98")
    assert stats["top_selling_items"][0] == {"id": 1, "name": "Margherita", "quantity": 4}
    assert client.get("/admin/stats", headers=auth_headers(customer)).status_code == 403


def test_admin_logs_filtered_by_admin(client, customer, admin):
    other_admin = Actor(id=11, email="second@example.com", role=Role.ADMIN)
    first = place(client, customer)
    second = place(client, customer)
    client.put(f"/orders/{first['id']}/status", json={"status": "preparing"}, headers=auth_headers(admin))
    client.put(f"/orders/{second['id']}/status", json={"status": "cancelled"}, headers=auth_headers(other_admin))

    logs = client.get("/admin/logs", params={"admin_id": other_admin.id}, headers=auth_headers(admin)).json()

    assert len(logs) == 1
    assert logs[0]["details"] == {"from": "pending", "to": "cancelled"}
    assert client.get("/admin/logs", headers=auth_headers(customer)).status_code == 403


def test_order_too_large_for_money_columns_is_a_client_error(client, customer):
    body = dict(ORDER_BODY, items=[{"id": 1, "name": "Banquet", "unitPrice": 1000000, "quantity": 100}])

    response = client.post("/orders", json=body, headers=auth_headers(customer))

    assert response.status_code == 400
    assert "exceeds maximum" in response.json()["detail"]
    assert client.get("/orders", headers=auth_headers(customer)).json() == []
