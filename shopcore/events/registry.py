"""
Shop Core Event Bus — Registries
==================================
EventTypeRegistry controls which event types may be PUBLISHED.
SubscriberRegistry controls which handlers LISTEN to them.

Rules:
- Event types must follow engine.domain.action format
- Multiple subscribers per event type allowed
- Duplicate handler for same event type forbidden
- Self-subscription (engine listens to own events) blocked unless explicit
- In-memory only, thread-safe
"""

import logging
from threading import Lock
from typing import Callable

from shopcore.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
    SelfSubscriptionError,
)

logger = logging.getLogger("shop.events")


def validate_event_type_format(event_type: str) -> None:
    if not event_type or not isinstance(event_type, str):
        raise InvalidEventTypeFormat(event_type or "")

    parts = event_type.strip().split(".")
    if len(parts) < 3 or not all(parts):
        raise InvalidEventTypeFormat(event_type)


class EventTypeRegistry:
    """Set of event types an engine is allowed to publish."""

    def __init__(self):
        self._types: set[str] = set()
        self._lock = Lock()

    def register(self, event_type: str) -> None:
        validate_event_type_format(event_type)
        with self._lock:
            self._types.add(event_type)

    def is_registered(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._types

    def all_types(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._types)


class SubscriberRegistry:
    """
    In-memory registry of event subscribers.

    Each entry maps an event_type to a list of
    (handler, subscriber_engine) tuples.
    """

    def __init__(self):
        self._subscribers: dict[str, list[tuple[Callable, str]]] = {}
        self._lock = Lock()

    def register_subscriber(
        self,
        event_type: str,
        handler: Callable,
        subscriber_engine: str,
        allow_self_subscription: bool = False,
    ) -> None:
        """
        Register a handler for an event type.

        Raises:
            InvalidEventTypeFormat:  Bad event type format
            DuplicateSubscriberError: Handler already registered
            SelfSubscriptionError:   Engine subscribing to own events
        """
        validate_event_type_format(event_type)

        if not callable(handler):
            raise EventBusError(
                f"Handler must be callable, got {type(handler)}."
            )

        source_engine = event_type.split(".")[0]
        if source_engine == subscriber_engine and not allow_self_subscription:
            raise SelfSubscriptionError(subscriber_engine, event_type)

        handler_name = getattr(handler, "__qualname__", str(handler))

        with self._lock:
            entries = self._subscribers.setdefault(event_type, [])
            for existing_handler, _ in entries:
                if existing_handler == handler:
                    raise DuplicateSubscriberError(event_type, handler_name)
            entries.append((handler, subscriber_engine))

        logger.info(
            f"Subscriber registered: {handler_name} → {event_type} "
            f"(from engine: {subscriber_engine})"
        )

    def get_subscribers(self, event_type: str) -> list[tuple[Callable, str]]:
        """Empty list if no subscribers (not an error)."""
        with self._lock:
            return list(self._subscribers.get(event_type, []))

    def has_subscribers(self, event_type: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(event_type))

    def subscriber_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))
