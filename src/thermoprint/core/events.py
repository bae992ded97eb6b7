"""
Print session notifications.

The print manager reports what a session is doing (connected, chunk 3 of
5 sent, failed) through an EventBus, so a UI can follow a print without
depending on the transport code.
"""

import asyncio
import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Print lifecycle event types."""
    PRINT_START = auto()
    PRINTER_CONNECTED = auto()
    PRINT_PROGRESS = auto()
    PRINT_COMPLETE = auto()
    PRINT_ERROR = auto()


@dataclass
class Event:
    """
    A single notification.

    Attributes:
        type: What happened
        data: Payload (sale id, chunk counters, error details)
        source: Component that emitted it
        timestamp: When it was created
    """
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "thermoprint"
    timestamp: float = field(default_factory=time.time)


Handler = Union[Callable[[Event], None], Callable[[Event], Awaitable[None]]]


class EventBus:
    """
    Delivers print events to subscribers.

    Handlers run in subscription order. A handler that raises is logged
    and skipped; it never breaks the print session that emitted the event.
    """

    def __init__(self, history_size: int = 100) -> None:
        self._subscribers: dict[Optional[EventType], list[Handler]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=history_size)

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for one event type.

        Returns:
            Function that removes the handler again
        """
        return self._add(event_type, handler)

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Register a handler for every event type."""
        return self._add(None, handler)

    def _add(self, key: Optional[EventType], handler: Handler) -> Callable[[], None]:
        self._subscribers[key].append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers[key]
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def _handlers_for(self, event: Event) -> list[Handler]:
        return [*self._subscribers.get(event.type, []), *self._subscribers.get(None, [])]

    def emit(self, event: Event) -> None:
        """Deliver an event to synchronous handlers.

        Coroutine handlers are skipped here; use emit_async() to reach them.
        """
        self._history.append(event)
        for handler in self._handlers_for(event):
            if asyncio.iscoroutinefunction(handler):
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler for {event.type.name} failed: {e}")

    async def emit_async(self, event: Event) -> None:
        """Deliver an event to every handler, awaiting coroutine handlers in turn."""
        self._history.append(event)
        for handler in self._handlers_for(event):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Handler for {event.type.name} failed: {e}")

    def history(self, event_type: Optional[EventType] = None, limit: Optional[int] = None) -> list[Event]:
        """Recent events, oldest first, optionally of one type only."""
        events = [e for e in self._history if event_type is None or e.type == event_type]
        if limit is not None:
            events = events[-limit:]
        return events

    def clear_history(self) -> None:
        self._history.clear()
