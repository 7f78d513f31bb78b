"""
clientstore.events  ──  event taxonomy, payload models and the handler registry
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List

from pydantic import BaseModel

from .errors import InvalidHandlerError, error_messages

UnSubscriber = Callable[[], None]
StoreSubscriber = Callable[["EventType", Any], Any]
EventHandler = Callable[[Any], Any]


class EventType(str, Enum):
    READY = "ready"
    PROCESSING = "processing"
    PROCESSING_EVENTS = "processing-events"
    CREATED = "created"
    LOADED = "loaded"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"
    ABORTED = "aborted"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, event: Any, kind: str) -> "EventType":
        """Coerce a name or member, raising InvalidHandlerError when unknown."""
        try:
            return cls(event)
        except ValueError:
            raise InvalidHandlerError(error_messages.invalid_event_name(kind, event)) from None


class _Abort:
    """Signal returned by intercept / before-change handlers to cancel an action."""

    _instance: "_Abort | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABORT"


ABORT = _Abort()


class ActionEventData(BaseModel):
    """Payload of ``aborted`` and ``error`` events."""

    action: EventType
    data: Any = None
    id: str | None = None
    error: BaseException | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}


class InterceptData(BaseModel):
    """Argument handed to intercept and before-change handlers."""

    data: Any = None
    id: str | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}


class EventRegistry:
    """Central registry for store subscribers and per-event handlers"""

    def __init__(self):
        # dicts used as ordered sets so handlers fire in registration order
        self._subscribers: Dict[StoreSubscriber, None] = {}
        self._handlers: Dict[EventType, Dict[EventHandler, None]] = {
            event: {} for event in EventType
        }

    def subscribe(self, sub: StoreSubscriber) -> UnSubscriber:
        """Register a handler for every event type"""
        if not callable(sub):
            raise InvalidHandlerError(error_messages.invalid_sub_handler(sub))

        self._subscribers[sub] = None

        def unsubscribe() -> None:
            self._subscribers.pop(sub, None)

        return unsubscribe

    def on(self, event: EventType | str, handler: EventHandler) -> UnSubscriber:
        """Register a handler for a single event type"""
        if not callable(handler):
            raise InvalidHandlerError(error_messages.invalid_event_handler("ON", event, handler))
        event_type = EventType.parse(event, "ON")
        self._handlers[event_type][handler] = None
        return lambda: self.off(event_type, handler)

    def off(self, event: EventType | str, handler: EventHandler) -> None:
        if not callable(handler):
            raise InvalidHandlerError(error_messages.invalid_event_handler("OFF", event, handler))
        event_type = EventType.parse(event, "OFF")
        self._handlers[event_type].pop(handler, None)

    def emit(self, event: EventType, data: Any) -> None:
        """Emit event to subscribers first, then to matching handlers"""
        subscribers: List[StoreSubscriber] = list(self._subscribers)
        handlers: List[EventHandler] = list(self._handlers[event])

        for sub in subscribers:
            sub(event, data)

        for handler in handlers:
            handler(data)
