import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


async def maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class Subscription:
    """Handle returned by ``subscribe``. Disposing it twice is harmless."""

    def __init__(self, remove: Callable[[], None]):
        self._remove = remove
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._remove()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.unsubscribe()


class EventDispatcher:
    """Routes decoded server messages to handlers by their ``type``."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: Handler) -> Subscription:
        self._handlers[event_type].append(handler)

        def remove():
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return Subscription(remove)

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, ()))

    async def dispatch(self, message: Any):
        # Copy: handlers may unsubscribe while running
        for handler in list(self._handlers.get(message.type, ())):
            try:
                await maybe_await(handler(message))
            except Exception:
                logger.exception("Handler for '%s' failed", message.type)
