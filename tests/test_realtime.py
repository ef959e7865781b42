import pytest
from starlette.websockets import WebSocketDisconnect

from client.state import LocalState
from conftest import auth_headers, token_for
from schemas.websocket import NewOrderEvent, server_message_adapter


def staff_socket(client, user):
    return client.websocket_connect(f"/api/ws?token={token_for(user)}")


def open_session(client, user, table_number=7) -> str:
    response = client.post(
        "/api/table-session/generate",
        json={"tableNumber": table_number},
        headers=auth_headers(user),
    )
    return response.json()["session"]["sessionToken"]


def place_order(client, session_token):
    return client.post(
        "/api/order/place",
        json={"sessionToken": session_token, "items": [{"name": "Fries", "price": 4, "quantity": 1}]},
    )


def receive_type(ws, expected):
    """Next message, which must be of the ``expected`` type."""
    message = ws.receive_json()
    assert message["type"] == expected, message
    return message


@pytest.mark.parametrize("query", ["", "?token=garbage", "?session_token=unknown"])
def test_handshake_refused_without_valid_credential(client, query):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/ws{query}"):
            pass
    assert exc_info.value.code == 1008


def test_expired_session_token_is_refused(client, make_user):
    waiter = make_user(role="waiter")
    token = open_session(client, waiter)
    sessions = client.get("/api/table-session/active", headers=auth_headers(waiter)).json()["sessions"]
    client.put(f"/api/table-session/{sessions[0]['id']}/expire", headers=auth_headers(waiter))

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/api/ws?session_token={token}"):
            pass


def test_staff_default_rooms(client, make_user):
    waiter = make_user(role="waiter")
    with staff_socket(client, waiter) as ws:
        ready = receive_type(ws, "connection:ready")
        assert ready["rooms"] == ["role:waiter", f"user:{waiter.id}"]
        assert ready["connectionId"]


def test_bearer_header_is_accepted(client, make_user):
    kitchen = make_user(role="kitchen")
    with client.websocket_connect("/api/ws", headers=auth_headers(kitchen)) as ws:
        assert receive_type(ws, "connection:ready")["rooms"] == ["role:kitchen", f"user:{kitchen.id}"]


def test_new_order_reaches_staff_and_pending_count_grows(client, make_user):
    waiter = make_user(role="waiter")
    token = open_session(client, waiter)
    state = LocalState()

    with staff_socket(client, waiter) as ws:
        receive_type(ws, "connection:ready")
        order_id = place_order(client, token).json()["order"]["id"]

        event = server_message_adapter.validate_python(receive_type(ws, "newOrder"))
        assert isinstance(event, NewOrderEvent)
        assert event.order.table_number == 7
        assert str(event.order.id) == order_id

        state.apply(event)
        state.apply(event)
        assert state.pending_count == 1


def test_session_events_reach_staff(client, make_user):
    manager = make_user(role="manager")
    with staff_socket(client, manager) as ws:
        receive_type(ws, "connection:ready")
        open_session(client, manager, table_number=3)
        created = receive_type(ws, "tableSession:created")
        assert created["session"]["tableNumber"] == 3

        client.put(f"/api/table-session/{created['session']['id']}/expire", headers=auth_headers(manager))
        expired = receive_type(ws, "tableSession:expired")
        assert expired == {
            "type": "tableSession:expired",
            "sessionId": created["session"]["id"],
            "tableNumber": 3,
        }


def test_customer_follows_only_its_table(client, make_user):
    waiter = make_user(role="waiter")
    token = open_session(client, waiter)

    with client.websocket_connect(f"/api/ws?session_token={token}") as ws:
        assert receive_type(ws, "connection:ready")["rooms"] == ["table:7"]

        ws.send_json({"type": "joinTable", "tableNumber": 8})
        assert receive_type(ws, "error")["message"] == "Not allowed to join room table:8"

        ws.send_json({"type": "joinRoom", "room": "role:admin"})
        receive_type(ws, "error")

        order_id = place_order(client, token).json()["order"]["id"]
        assert receive_type(ws, "newOrder")["order"]["id"] == order_id

        client.put(f"/api/order/{order_id}/status", json={"status": "preparing"}, headers=auth_headers(waiter))
        update = receive_type(ws, "orderStatusUpdated")
        assert update["order"]["status"] == "preparing"
        assert update["order"]["oldStatus"] == "pending"


def test_staff_room_policy(client, make_user):
    waiter = make_user(role="waiter")
    with staff_socket(client, waiter) as ws:
        receive_type(ws, "connection:ready")

        ws.send_json({"type": "joinTable", "tableNumber": 8})
        assert receive_type(ws, "room:joined")["room"] == "table:8"

        ws.send_json({"type": "joinRoom", "room": "role:admin"})
        receive_type(ws, "error")

        ws.send_json({"type": "leaveRoom", "room": "table:8"})
        assert receive_type(ws, "room:left")["room"] == "table:8"

        ws.send_json({"type": "shout", "text": "hello"})
        assert receive_type(ws, "error")["message"] == "Invalid message"


def test_unapproved_account_cannot_follow_tables(client, make_user):
    pending = make_user(role="pending", is_approved=False)
    with staff_socket(client, pending) as ws:
        assert receive_type(ws, "connection:ready")["rooms"] == [f"user:{pending.id}"]
        ws.send_json({"type": "joinTable", "tableNumber": 1})
        receive_type(ws, "error")


def test_admins_hear_about_registrations(client, make_user):
    admin = make_user(role="admin")
    with staff_socket(client, admin) as ws:
        receive_type(ws, "connection:ready")
        client.post(
            "/api/auth/register",
            json={"name": "Luz", "email": "luz@example.com", "password": "secret123"},
        )
        event = receive_type(ws, "employee:registered")
        assert event["employee"]["email"] == "luz@example.com"
        assert event["employee"]["isAproved"] is False


def test_approval_flow_rescopes_connection(client, make_user):
    admin = make_user(role="admin")
    employee = make_user(role="pending", is_approved=False)

    with staff_socket(client, employee) as ws:
        receive_type(ws, "connection:ready")

        client.put(
            f"/api/admin/employees/{employee.id}/role",
            json={"role": "waiter"},
            headers=auth_headers(admin),
        )
        changed = receive_type(ws, "role:changed")
        assert changed["newRole"] == "waiter"

        client.put(f"/api/admin/employees/{employee.id}/approve", headers=auth_headers(admin))
        receive_type(ws, "account:approved")

        # Now in role:waiter, so order traffic arrives
        token = open_session(client, admin, table_number=2)
        receive_type(ws, "tableSession:created")
        place_order(client, token)
        assert receive_type(ws, "newOrder")["order"]["tableNumber"] == 2


def test_rejection_is_delivered_before_removal(client, make_user):
    admin = make_user(role="admin")
    employee = make_user(role="pending", is_approved=False)

    with staff_socket(client, employee) as ws:
        receive_type(ws, "connection:ready")
        client.put(
            f"/api/admin/employees/{employee.id}/reject",
            json={"reason": "Unknown applicant"},
            headers=auth_headers(admin),
        )
        rejected = receive_type(ws, "account:rejected")
        assert rejected["reason"] == "Unknown applicant"
        assert_nothing_queued(ws, employee)


def assert_nothing_queued(ws, user):
    """A join of the account's own room must be answered next."""
    ws.send_json({"type": "joinRoom", "room": f"user:{user.id}"})
    assert receive_type(ws, "room:joined")["room"] == f"user:{user.id}"


def test_deleted_account_stops_receiving_staff_traffic(client, make_user):
    admin = make_user(role="admin")
    waiter = make_user(role="waiter")

    with staff_socket(client, waiter) as ws:
        receive_type(ws, "connection:ready")
        ws.send_json({"type": "joinTable", "tableNumber": 4})
        receive_type(ws, "room:joined")

        response = client.delete(f"/api/admin/employees/{waiter.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        receive_type(ws, "account:deleted")

        token = open_session(client, admin, table_number=4)
        place_order(client, token)
        assert_nothing_queued(ws, waiter)

        ws.send_json({"type": "joinTable", "tableNumber": 4})
        receive_type(ws, "error")


def test_demoted_account_leaves_followed_tables(client, make_user):
    admin = make_user(role="admin")
    waiter = make_user(role="waiter")

    with staff_socket(client, waiter) as ws:
        receive_type(ws, "connection:ready")
        ws.send_json({"type": "joinTable", "tableNumber": 5})
        receive_type(ws, "room:joined")

        client.put(f"/api/admin/employees/{waiter.id}/role", json={"role": "pending"}, headers=auth_headers(admin))
        assert receive_type(ws, "role:changed")["newRole"] == "pending"

        token = open_session(client, admin, table_number=5)
        place_order(client, token)
        assert_nothing_queued(ws, waiter)


def test_expired_session_socket_misses_the_next_session(client, make_user):
    waiter = make_user(role="waiter")
    old_token = open_session(client, waiter)
    sessions = client.get("/api/table-session/active", headers=auth_headers(waiter)).json()["sessions"]

    with client.websocket_connect(f"/api/ws?session_token={old_token}") as ws:
        receive_type(ws, "connection:ready")

        client.put(f"/api/table-session/{sessions[0]['id']}/expire", headers=auth_headers(waiter))
        assert receive_type(ws, "tableSession:expired")["tableNumber"] == 7

        new_token = open_session(client, waiter)
        assert place_order(client, new_token).status_code == 201

        ws.send_json({"type": "joinTable", "tableNumber": 7})
        assert receive_type(ws, "error")["message"] == "Not allowed to join room table:7"


def test_binary_frames_are_answered_with_an_error(client, make_user):
    waiter = make_user(role="waiter")
    with staff_socket(client, waiter) as ws:
        receive_type(ws, "connection:ready")

        ws.send_bytes(b"\x00\x01")
        assert receive_type(ws, "error")["message"] == "Invalid message"

        ws.send_json({"type": "joinTable", "tableNumber": 8})
        assert receive_type(ws, "room:joined")["room"] == "table:8"


def test_roster_changes_reach_admins_and_managers(client, make_user):
    admin = make_user(role="admin")
    manager = make_user(role="manager")
    employee = make_user(role="pending", is_approved=False, email="ana@example.com")

    with staff_socket(client, admin) as admin_ws, staff_socket(client, manager) as manager_ws:
        receive_type(admin_ws, "connection:ready")
        receive_type(manager_ws, "connection:ready")

        client.put(f"/api/admin/employees/{employee.id}/role", json={"role": "kitchen"}, headers=auth_headers(admin))
        for ws in (admin_ws, manager_ws):
            updated = receive_type(ws, "employee:roleUpdated")
            assert updated["oldRole"] == "pending"
            assert updated["employee"]["role"] == "kitchen"

        client.put(f"/api/admin/employees/{employee.id}/approve", headers=auth_headers(admin))
        for ws in (admin_ws, manager_ws):
            assert receive_type(ws, "employee:approved")["employee"]["id"] == str(employee.id)

        client.delete(f"/api/admin/employees/{employee.id}", headers=auth_headers(admin))
        for ws in (admin_ws, manager_ws):
            assert receive_type(ws, "employee:deleted") == {
                "type": "employee:deleted",
                "employeeId": str(employee.id),
                "name": "Test User",
                "email": "ana@example.com",
            }


def test_rejection_is_announced_to_the_roster(client, make_user):
    admin = make_user(role="admin")
    employee = make_user(role="pending", is_approved=False)

    with staff_socket(client, admin) as ws:
        receive_type(ws, "connection:ready")
        client.put(f"/api/admin/employees/{employee.id}/reject", json={}, headers=auth_headers(admin))
        rejected = receive_type(ws, "employee:rejected")
        assert rejected["employeeId"] == str(employee.id)
        assert rejected["reason"] == "No reason provided"
