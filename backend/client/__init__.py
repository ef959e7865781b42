from client.api import ApiError, RestaurantApi
from client.connection import ConnectionStatus, RealtimeConnection
from client.consumer import SessionEventConsumer
from client.events import EventDispatcher, Subscription
from client.state import LocalState

__all__ = [
    "ApiError",
    "RestaurantApi",
    "ConnectionStatus",
    "RealtimeConnection",
    "SessionEventConsumer",
    "EventDispatcher",
    "Subscription",
    "LocalState",
]
