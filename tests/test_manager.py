import asyncio
import uuid
from contextlib import suppress
from datetime import timedelta

import pytest

from api.websocket.manager import ConnectionManager
from api.websocket.rooms import Principal, can_join
from core.timeutils import utcnow
from schemas.websocket import AccountApprovedEvent, OrderDeletedEvent

pytestmark = pytest.mark.anyio


class FakeWebSocket:
    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)


def waiter(user_id=None):
    return Principal(kind="staff", user_id=user_id or uuid.uuid4(), role="waiter", is_approved=True)


def deleted(n=1):
    return OrderDeletedEvent(order_id=uuid.uuid4(), table_number=n)


async def test_connect_joins_default_rooms():
    manager = ConnectionManager()
    websocket = FakeWebSocket()
    connection = await manager.connect(websocket, waiter())

    assert websocket.accepted
    assert "role:waiter" in connection.rooms
    assert manager.room_size("role:waiter") == 1

    manager.disconnect(connection)
    assert manager.room_size("role:waiter") == 0
    assert manager.active_connections == {}


async def test_broadcast_reaches_each_connection_once():
    manager = ConnectionManager()
    connection = await manager.connect(FakeWebSocket(), waiter())
    manager.join(connection, "table:1")

    assert await manager.broadcast_to_staff(deleted(1), table_number=1) == 1
    assert connection.queue.qsize() == 1


async def test_full_queue_drops_the_message():
    manager = ConnectionManager(queue_size=1)
    connection = await manager.connect(FakeWebSocket(), waiter())

    assert await manager.broadcast_to_staff(deleted()) == 1
    assert await manager.broadcast_to_staff(deleted()) == 0
    assert connection.queue.qsize() == 1


async def test_writer_keeps_emission_order():
    manager = ConnectionManager()
    websocket = FakeWebSocket()
    connection = await manager.connect(websocket, waiter())
    events = [deleted(n) for n in range(1, 6)]
    for event in events:
        await manager.broadcast_to_staff(event)

    writer = asyncio.create_task(connection.writer())
    while not connection.queue.empty():
        await asyncio.sleep(0)
    await asyncio.sleep(0)
    writer.cancel()
    with suppress(asyncio.CancelledError):
        await writer

    assert [message["tableNumber"] for message in websocket.sent] == [1, 2, 3, 4, 5]


async def test_update_user_access_moves_role_rooms():
    manager = ConnectionManager()
    user_id = uuid.uuid4()
    pending = Principal(kind="staff", user_id=user_id, role="pending", is_approved=False)
    connection = await manager.connect(FakeWebSocket(), pending)
    assert connection.rooms == {f"user:{user_id}"}

    manager.update_user_access(user_id, "kitchen", True)
    assert connection.rooms == {f"user:{user_id}", "role:kitchen"}

    manager.update_user_access(user_id, "waiter", True)
    assert connection.rooms == {f"user:{user_id}", "role:waiter"}
    assert manager.room_size("role:kitchen") == 0

    assert await manager.send_to_user(AccountApprovedEvent(), user_id) == 1


async def test_demotion_leaves_rooms_it_can_no_longer_join():
    manager = ConnectionManager()
    user_id = uuid.uuid4()
    connection = await manager.connect(FakeWebSocket(), waiter(user_id))
    manager.join(connection, "table:5")

    manager.update_user_access(user_id, "pending", False)

    assert connection.rooms == {f"user:{user_id}"}
    assert manager.room_size("table:5") == 0
    assert manager.room_size("role:waiter") == 0
    assert await manager.broadcast_to_staff(deleted(5), table_number=5) == 0


async def test_revoked_account_keeps_only_its_user_room():
    manager = ConnectionManager()
    user_id = uuid.uuid4()
    connection = await manager.connect(FakeWebSocket(), waiter(user_id))
    manager.join(connection, "table:3")
    bystander = await manager.connect(FakeWebSocket(), waiter())

    assert manager.revoke_user(user_id) == 1

    assert connection.rooms == {f"user:{user_id}"}
    assert not can_join(connection.principal, "table:3")
    assert await manager.broadcast_to_staff(deleted(3), table_number=3) == 1
    assert connection.queue.empty()
    assert bystander.queue.qsize() == 1


def customer(table_number=7, expires_in=timedelta(hours=1)):
    return Principal(
        kind="customer",
        table_number=table_number,
        session_id=uuid.uuid4(),
        expires_at=utcnow() + expires_in,
    )


async def test_revoked_session_leaves_its_table():
    manager = ConnectionManager()
    principal = customer()
    connection = await manager.connect(FakeWebSocket(), principal)
    other = await manager.connect(FakeWebSocket(), customer())

    assert manager.revoke_session(principal.session_id) == 1

    assert connection.rooms == set()
    assert not can_join(connection.principal, "table:7")
    assert other.rooms == {"table:7"}


async def test_customer_past_expiry_is_evicted_on_broadcast():
    manager = ConnectionManager()
    connection = await manager.connect(FakeWebSocket(), customer(expires_in=timedelta(seconds=-1)))
    assert connection.rooms == {"table:7"}

    assert await manager.broadcast_to_staff(deleted(7), table_number=7) == 0
    assert connection.queue.empty()
    assert manager.room_size("table:7") == 0
