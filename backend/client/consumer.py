"""Keeps a ``LocalState`` in sync with the server.

Pushed events are merged as they arrive. Independently, a full re-fetch runs
after every (re)connect and on a fixed poll, so missed pushes are repaired
within one poll interval.
"""
import asyncio
import logging
from contextlib import suppress
from typing import Callable, Optional

import httpx

from client.api import ApiError, RestaurantApi
from client.connection import RealtimeConnection
from client.events import EventDispatcher, Subscription, maybe_await
from client.state import LocalState

logger = logging.getLogger(__name__)

MERGED_EVENTS = (
    "newOrder",
    "orderStatusUpdated",
    "orderDeleted",
    "tableSession:created",
    "tableSession:expired",
    "role:changed",
    "employee:registered",
    "employee:approved",
    "employee:roleUpdated",
    "employee:rejected",
    "employee:deleted",
)


class SessionEventConsumer:
    def __init__(
        self,
        api: RestaurantApi,
        connection: RealtimeConnection,
        dispatcher: EventDispatcher,
        state: Optional[LocalState] = None,
        poll_interval: float = 30.0,
        on_approved: Optional[Callable] = None,
        on_signed_out: Optional[Callable] = None,
    ):
        self.api = api
        self.connection = connection
        self.dispatcher = dispatcher
        self.state = state or LocalState()
        self.poll_interval = poll_interval
        self.on_approved = on_approved
        self.on_signed_out = on_signed_out

        self._subscriptions: list[Subscription] = []
        self._tasks: list[asyncio.Task] = []
        self._reconcile_lock = asyncio.Lock()

    def subscribe(self):
        """Register the merge and account handlers."""
        for event_type in MERGED_EVENTS:
            self._subscriptions.append(self.dispatcher.subscribe(event_type, self.state.apply))
        self._subscriptions += [
            self.dispatcher.subscribe("account:approved", self.refresh_user),
            self.dispatcher.subscribe("role:changed", self.refresh_user),
            self.dispatcher.subscribe("account:rejected", self.sign_out),
            self.dispatcher.subscribe("account:deleted", self.sign_out),
            self.connection.on_connected(self.reconcile),
        ]

    def start(self):
        self.subscribe()
        self._tasks = [
            asyncio.create_task(self.connection.run()),
            asyncio.create_task(self.poll_forever()),
        ]

    async def stop(self):
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        await self.connection.close()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._tasks = []

    async def reconcile(self) -> bool:
        """Replace the local lists with the server's. Returns False on failure."""
        async with self._reconcile_lock:
            try:
                sessions = await self.api.today_sessions()
                orders = await self.api.all_orders()
            except (ApiError, httpx.HTTPError) as e:
                logger.warning("Reconcile failed: %s", e)
                return False
            self.state.replace_sessions(sessions)
            self.state.replace_orders(orders)
            logger.debug("Reconciled %d sessions and %d orders", len(sessions), len(orders))
            return True

    async def poll_forever(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.reconcile()

    async def refresh_user(self, event=None):
        """Re-read the account from the server; the event itself is only a hint."""
        try:
            me = await self.api.me()
        except (ApiError, httpx.HTTPError) as e:
            logger.warning("Could not refresh the signed-in user: %s", e)
            return
        self.state.user = me.user
        if me.user.is_approved and self.on_approved is not None:
            await maybe_await(self.on_approved(me.user, me.landing))

    async def sign_out(self, event):
        reason = getattr(event, "reason", None) or event.message
        logger.info("Signed out by the server: %s", reason)
        self.state.user = None
        self.api.token = None
        if self.on_signed_out is not None:
            await maybe_await(self.on_signed_out(reason))
