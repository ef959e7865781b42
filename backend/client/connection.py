import asyncio
import enum
import json
import logging
from typing import Callable, Optional
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from client.events import EventDispatcher, Subscription, maybe_await
from schemas.websocket import (
    JoinRoomMessage,
    JoinTableMessage,
    LeaveRoomMessage,
    encode_message,
    server_message_adapter,
)

logger = logging.getLogger(__name__)

# Handshake refusals that a retry cannot fix
AUTH_REJECTED = (401, 403)


class ConnectionStatus(str, enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    OFFLINE = "offline"
    CLOSED = "closed"


class RealtimeConnection:
    """Client side of the realtime channel.

    Retries a lost connection a bounded number of times with a fixed delay,
    then reports ``offline``. Every attempt that ends without ``close()``
    counts against the budget, a clean close by the server included; only a
    connection that stayed up for ``stable_after`` seconds resets it. Rooms
    joined through this object are joined again after every reconnect.
    """

    def __init__(
        self,
        url: str,
        dispatcher: EventDispatcher,
        token: Optional[str] = None,
        session_token: Optional[str] = None,
        max_attempts: int = 5,
        retry_delay: float = 1.0,
        stable_after: float = 30.0,
    ):
        self.url = url
        self.dispatcher = dispatcher
        self.token = token
        self.session_token = session_token
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.stable_after = stable_after

        self.status = ConnectionStatus.CLOSED
        self.rooms: set[str] = set()
        self._connect_listeners: list[Callable] = []
        self._ws = None
        self._closing = False

    def _connect_url(self) -> str:
        params = {}
        if self.token:
            params["token"] = self.token
        elif self.session_token:
            params["session_token"] = self.session_token
        if not params:
            return self.url
        return f"{self.url}?{urlencode(params)}"

    def _set_status(self, status: ConnectionStatus):
        if status != self.status:
            logger.info("Realtime connection %s -> %s", self.status.value, status.value)
            self.status = status

    def on_connected(self, listener: Callable) -> Subscription:
        """Call ``listener`` after every successful (re)connect."""
        self._connect_listeners.append(listener)

        def remove():
            if listener in self._connect_listeners:
                self._connect_listeners.remove(listener)

        return Subscription(remove)

    async def run(self):
        """Keep the connection up until closed or out of attempts."""
        self._closing = False
        failures = 0
        connected_before = False
        loop = asyncio.get_running_loop()

        while not self._closing:
            self._set_status(ConnectionStatus.RECONNECTING if connected_before else ConnectionStatus.CONNECTING)
            connected_at = None
            try:
                async with websockets.connect(self._connect_url()) as ws:
                    self._ws = ws
                    connected_at = loop.time()
                    connected_before = True
                    self._set_status(ConnectionStatus.CONNECTED)
                    await self._rejoin_rooms()
                    for listener in list(self._connect_listeners):
                        await maybe_await(listener())
                    async for raw in ws:
                        await self._receive(raw)
                if not self._closing:
                    logger.info("Realtime connection closed by the server")
            except InvalidStatus as e:
                code = e.response.status_code
                if code in AUTH_REJECTED:
                    logger.warning("Realtime handshake rejected with %s, not retrying", code)
                    break
                logger.info("Realtime handshake failed with %s", code)
            except (OSError, asyncio.TimeoutError, ConnectionClosed, WebSocketException) as e:
                logger.info("Realtime connection lost: %s", e)
            finally:
                self._ws = None

            if self._closing:
                break
            if connected_at is not None and loop.time() - connected_at >= self.stable_after:
                failures = 0
            failures += 1
            if failures >= self.max_attempts:
                logger.warning("Giving up on the realtime connection after %d attempts", failures)
                break
            await asyncio.sleep(self.retry_delay)

        self._set_status(ConnectionStatus.CLOSED if self._closing else ConnectionStatus.OFFLINE)

    async def close(self):
        self._closing = True
        if self._ws is not None:
            await self._ws.close()

    async def _receive(self, raw):
        try:
            message = server_message_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Dropping undecodable realtime frame: %s", e.errors()[:1])
            return
        await self.dispatcher.dispatch(message)

    async def _send(self, message):
        if self._ws is None:
            return
        try:
            await self._ws.send(json.dumps(encode_message(message)))
        except ConnectionClosed:
            # Sent again by the rejoin after the reconnect
            logger.debug("Connection closed before '%s' could be sent", message.type)

    async def _rejoin_rooms(self):
        for room in sorted(self.rooms):
            await self._send(JoinRoomMessage(room=room))

    async def join_table(self, table_number: int):
        self.rooms.add(f"table:{table_number}")
        await self._send(JoinTableMessage(table_number=table_number))

    async def join_room(self, room: str):
        self.rooms.add(room)
        await self._send(JoinRoomMessage(room=room))

    async def leave_room(self, room: str):
        self.rooms.discard(room)
        await self._send(LeaveRoomMessage(room=room))
