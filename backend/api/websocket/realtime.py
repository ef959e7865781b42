import asyncio
import logging
from contextlib import suppress
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlmodel import Session

from api.websocket.manager import Connection, ConnectionManager
from api.websocket.rooms import Principal, can_join, table_room
from core.security import get_user_id_from_token
from core.timeutils import utcnow
from crud.auth import get_user_by_id
from crud.table_sessions import get_session_by_token
from schemas.websocket import (
    ConnectionReadyMessage,
    ErrorMessage,
    JoinTableMessage,
    LeaveRoomMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    client_message_adapter,
)

logger = logging.getLogger(__name__)


def authenticate_connection(
    db: Session,
    token: Optional[str] = None,
    session_token: Optional[str] = None
) -> Optional[Principal]:
    """Resolve the credential offered at handshake time.

    Staff present their bearer JWT; customers present the token of an active
    table session. Returns None when the credential is missing or invalid.
    """
    if token:
        user_id = get_user_id_from_token(token)
        if user_id is None:
            return None
        user = get_user_by_id(db, user_id)
        if user is None:
            return None
        return Principal(
            kind="staff",
            user_id=user.id,
            role=user.role,
            is_approved=user.is_approved,
        )

    if session_token:
        session = get_session_by_token(db, session_token)
        if session is None or not session.is_active or session.expires_at <= utcnow():
            return None
        return Principal(
            kind="customer",
            table_number=session.table_number,
            session_id=session.id,
            expires_at=session.expires_at,
        )

    return None


async def _handle_message(manager: ConnectionManager, connection: Connection, raw: str):
    """Route one incoming frame."""
    try:
        message = client_message_adapter.validate_json(raw)
    except ValidationError as e:
        logger.info("Connection %s sent an invalid message: %s", connection.id, e.errors()[:1])
        manager.send_personal_message(ErrorMessage(message="Invalid message"), connection)
        return

    if isinstance(message, LeaveRoomMessage):
        manager.leave(connection, message.room)
        manager.send_personal_message(RoomLeftMessage(room=message.room), connection)
        return

    if isinstance(message, JoinTableMessage):
        room = table_room(message.table_number)
    else:
        room = message.room

    if not can_join(connection.principal, room):
        logger.warning("Denied %s joining room %s", connection.principal.label, room)
        manager.send_personal_message(ErrorMessage(message=f"Not allowed to join room {room}"), connection)
        return

    manager.join(connection, room)
    logger.info("Connection %s joined %s", connection.id, room)
    manager.send_personal_message(RoomJoinedMessage(room=room), connection)


async def websocket_realtime_endpoint(websocket: WebSocket, manager: ConnectionManager, principal: Principal):
    """Serve one authenticated realtime connection until it closes."""
    connection = await manager.connect(websocket, principal)
    writer = asyncio.create_task(connection.writer())

    try:
        manager.send_personal_message(
            ConnectionReadyMessage(connection_id=connection.id, rooms=sorted(connection.rooms)),
            connection
        )
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("text") is None:
                # Only JSON text frames are part of the protocol
                manager.send_personal_message(ErrorMessage(message="Invalid message"), connection)
                continue
            await _handle_message(manager, connection, message["text"])
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(connection)
        writer.cancel()
        with suppress(asyncio.CancelledError):
            await writer
