import pytest

from conftest import auth_headers

ITEMS = [
    {"name": "Burger", "price": 9.5, "quantity": 2},
    {"name": "Lemonade", "price": 3, "quantity": 1},
]


@pytest.fixture
def waiter(make_user):
    return make_user(role="waiter")


@pytest.fixture
def session_token(client, waiter):
    response = client.post(
        "/api/table-session/generate",
        json={"tableNumber": 7},
        headers=auth_headers(waiter),
    )
    return response.json()["session"]["sessionToken"]


def place(client, session_token, items=ITEMS):
    return client.post("/api/order/place", json={"sessionToken": session_token, "items": items})


def test_place_order(client, session_token):
    response = place(client, session_token)
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["tableNumber"] == 7
    assert order["status"] == "pending"
    assert order["totalAmount"] == 22.0
    assert order["items"][0] == {"name": "Burger", "price": 9.5, "quantity": 2}

    orders = client.get("/api/order/table/7").json()["orders"]
    assert [o["id"] for o in orders] == [order["id"]]


def test_place_order_needs_session_and_items(client, session_token):
    assert place(client, "", ITEMS).json()["message"] == "Missing session or items"
    assert place(client, session_token, []).status_code == 400

    response = place(client, "f" * 32)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired session"


def test_place_order_on_expired_session(client, waiter, session_token):
    session = client.get("/api/table-session/active", headers=auth_headers(waiter)).json()["sessions"][0]
    client.put(f"/api/table-session/{session['id']}/expire", headers=auth_headers(waiter))

    assert place(client, session_token).status_code == 400


def test_order_usage_shows_in_session(client, waiter, session_token):
    place(client, session_token)
    place(client, session_token)

    session = client.get("/api/table-session/active", headers=auth_headers(waiter)).json()["sessions"][0]
    assert session["wasUsed"] is True
    assert session["usageCount"] == 2


def test_update_status(client, make_user, session_token):
    kitchen = make_user(role="kitchen")
    order_id = place(client, session_token).json()["order"]["id"]

    bad = client.put(f"/api/order/{order_id}/status", json={"status": "eaten"}, headers=auth_headers(kitchen))
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid status value"

    response = client.put(
        f"/api/order/{order_id}/status",
        json={"status": "preparing"},
        headers=auth_headers(kitchen),
    )
    assert response.status_code == 200
    assert response.json()["order"]["status"] == "preparing"

    stats = client.get("/api/order/stats", headers=auth_headers(kitchen)).json()["stats"]
    assert stats == {"pending": 0, "preparing": 1, "served": 0, "total": 1}


def test_update_status_requires_staff(client, session_token):
    order_id = place(client, session_token).json()["order"]["id"]
    response = client.put(f"/api/order/{order_id}/status", json={"status": "served"})
    assert response.status_code == 401


def test_cancel_only_pending_orders(client, waiter, session_token):
    first = place(client, session_token).json()["order"]["id"]
    second = place(client, session_token).json()["order"]["id"]
    client.put(f"/api/order/{second}/status", json={"status": "served"}, headers=auth_headers(waiter))

    assert client.delete(f"/api/order/{first}", headers=auth_headers(waiter)).status_code == 200

    response = client.delete(f"/api/order/{second}", headers=auth_headers(waiter))
    assert response.status_code == 400
    assert response.json()["message"] == "Only pending orders can be cancelled"

    remaining = client.get("/api/order/all", headers=auth_headers(waiter)).json()["orders"]
    assert [o["id"] for o in remaining] == [second]
