"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Binding changes
    END_TETHERED = auto()        # data: end (int), mode (OffsetMode)
    END_UNTETHERED = auto()      # data: end (int)
    ENDS_SWAPPED = auto()
    OFFSETS_REFRESHED = auto()   # data: anchor_count (int), swapped (bool)

    # Frame events
    FRAME_UPDATE = auto()        # data: dt (float)


class EventBus:
    """Simple publish/subscribe event system."""

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        for handler in self._handlers[event_type]:
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
