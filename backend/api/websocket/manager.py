import asyncio
import dataclasses
import logging
import uuid
from typing import Dict, Iterable, Set

from fastapi import WebSocket

from api.websocket.rooms import (
    Principal,
    STAFF_ROOMS,
    can_join,
    default_rooms,
    table_room,
    user_room,
)
from core.config import settings
from core.timeutils import utcnow
from schemas.common import CamelModel
from schemas.websocket import encode_message

logger = logging.getLogger(__name__)


class Connection:
    """One accepted WebSocket and its outbound queue.

    A single writer task drains the queue, so messages reach the client in
    the order they were enqueued and a slow client never blocks the sender.
    """

    def __init__(self, websocket: WebSocket, principal: Principal, queue_size: int):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.principal = principal
        self.rooms: Set[str] = set()
        self.queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=queue_size)

    def enqueue(self, message: dict) -> bool:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def writer(self):
        """Send queued messages until cancelled or the socket fails."""
        while True:
            message = await self.queue.get()
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                logger.info("Connection %s stopped sending: %s", self.id, e)
                return


class ConnectionManager:
    """Manages realtime connections and their room memberships."""

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        # connection id -> Connection
        self.active_connections: Dict[str, Connection] = {}
        # room -> connections
        self.rooms: Dict[str, Set[Connection]] = {}

    async def connect(self, websocket: WebSocket, principal: Principal) -> Connection:
        """Accept an authenticated WebSocket and join its default rooms."""
        await websocket.accept()

        connection = Connection(websocket, principal, self.queue_size)
        self.active_connections[connection.id] = connection
        for room in default_rooms(principal):
            self.join(connection, room)

        logger.info(
            "Connection %s opened for %s, rooms=%s",
            connection.id, principal.label, sorted(connection.rooms)
        )
        return connection

    def disconnect(self, connection: Connection):
        """Forget a connection and all of its memberships."""
        for room in list(connection.rooms):
            self.leave(connection, room)
        if self.active_connections.pop(connection.id, None) is not None:
            logger.info("Connection %s closed for %s", connection.id, connection.principal.label)

    def join(self, connection: Connection, room: str):
        self.rooms.setdefault(room, set()).add(connection)
        connection.rooms.add(room)

    def leave(self, connection: Connection, room: str):
        members = self.rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self.rooms[room]
        connection.rooms.discard(room)

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    def send_personal_message(self, message: CamelModel, connection: Connection) -> bool:
        """Queue a message for one connection."""
        return connection.enqueue(encode_message(message))

    async def broadcast(self, message: CamelModel, rooms: Iterable[str]) -> int:
        """Queue a message for every connection in any of the rooms.

        Delivery is best effort: a connection whose queue is full misses the
        message. Returns the number of connections it was queued for.
        """
        payload = encode_message(message)

        now = utcnow()
        targets: Dict[str, Connection] = {}
        for room in rooms:
            for connection in list(self.rooms.get(room, ())):
                if connection.principal.is_expired(now):
                    self._drop_rooms(connection)
                    logger.info("Connection %s evicted: table session expired", connection.id)
                    continue
                targets.setdefault(connection.id, connection)

        sent_count = 0
        for connection in targets.values():
            if connection.enqueue(payload):
                sent_count += 1
            else:
                logger.warning(
                    "Dropping '%s' for connection %s: outbound queue full",
                    payload.get("type"), connection.id
                )

        logger.debug("Broadcast '%s' queued for %d connections", payload.get("type"), sent_count)
        return sent_count

    async def broadcast_to_staff(self, message: CamelModel, table_number: int | None = None) -> int:
        """Send to every staff role room, and to the table room when given."""
        rooms = list(STAFF_ROOMS)
        if table_number is not None:
            rooms.append(table_room(table_number))
        return await self.broadcast(message, rooms)

    async def send_to_user(self, message: CamelModel, user_id: uuid.UUID) -> int:
        return await self.broadcast(message, [user_room(user_id)])

    def _drop_rooms(self, connection: Connection, keep: Iterable[str] = ()):
        for room in list(connection.rooms):
            if room not in keep:
                self.leave(connection, room)

    def _user_connections(self, user_id: uuid.UUID) -> list[Connection]:
        return [
            connection for connection in self.active_connections.values()
            if connection.principal.kind == "staff" and connection.principal.user_id == user_id
        ]

    def update_user_access(self, user_id: uuid.UUID, role: str, is_approved: bool):
        """Re-scope the live connections of an account after a role or approval change.

        Rooms the new role may no longer join are left, including tables
        followed while the account had more access.
        """
        for connection in self._user_connections(user_id):
            connection.principal = dataclasses.replace(
                connection.principal, role=role, is_approved=is_approved
            )
            for room in list(connection.rooms):
                if not can_join(connection.principal, room):
                    self.leave(connection, room)
            for room in default_rooms(connection.principal):
                self.join(connection, room)
            logger.info(
                "Connection %s re-scoped to %s, rooms=%s",
                connection.id, connection.principal.label, sorted(connection.rooms)
            )

    def revoke_user(self, user_id: uuid.UUID) -> int:
        """Cut a removed account off from everything but its own user room.

        Returns the number of connections affected.
        """
        connections = self._user_connections(user_id)
        for connection in connections:
            connection.principal = dataclasses.replace(
                connection.principal, role=None, is_approved=False
            )
            self._drop_rooms(connection, keep=(user_room(user_id),))
            logger.info("Connection %s revoked for removed account %s", connection.id, user_id)
        return len(connections)

    def revoke_session(self, session_id: uuid.UUID) -> int:
        """Evict the customer connections opened with a table session.

        Returns the number of connections affected.
        """
        count = 0
        for connection in list(self.active_connections.values()):
            principal = connection.principal
            if principal.kind != "customer" or principal.session_id != session_id:
                continue
            connection.principal = dataclasses.replace(principal, expires_at=utcnow())
            self._drop_rooms(connection)
            logger.info("Connection %s evicted: table session %s expired", connection.id, session_id)
            count += 1
        return count


manager = ConnectionManager(queue_size=settings.REALTIME_QUEUE_SIZE)
