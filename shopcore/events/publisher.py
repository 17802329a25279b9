"""
Shop Core Event Bus — Publisher
=================================
Single outbound path for engine notifications.

Flow per notification:
    1. Check the type is registered
    2. Wrap payload in a Notification envelope
    3. Journal it (when a persist function is injected)
    4. Dispatch to subscribers

The publisher keeps the most recent notifications it emitted (up to
history_limit) so hosts and tests can read them back in order.

A journal failure never reaches the emitting engine: it is logged and
the event_id is kept in `unjournaled` for the host to reconcile.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from typing import Any, Callable, Deque, Optional

from shopcore.events.dispatcher import dispatch
from shopcore.events.envelope import Notification
from shopcore.events.errors import UnregisteredEventType
from shopcore.events.registry import EventTypeRegistry, SubscriberRegistry
from shopcore.time.clock import Clock, get_default_clock

logger = logging.getLogger("shop.events")

DEFAULT_HISTORY_LIMIT = 1000

PersistEvent = Callable[[Notification], Any]


def _is_persist_accepted(persist_result: Any) -> bool:
    if hasattr(persist_result, "accepted"):
        return bool(getattr(persist_result, "accepted"))
    if isinstance(persist_result, dict):
        return bool(persist_result.get("accepted"))
    return bool(persist_result)


class EventPublisher:

    def __init__(
        self,
        *,
        event_type_registry: EventTypeRegistry,
        subscriber_registry: SubscriberRegistry | None = None,
        persist_event: Optional[PersistEvent] = None,
        clock: Clock | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        if (
            not isinstance(history_limit, int)
            or isinstance(history_limit, bool)
            or history_limit < 1
        ):
            raise ValueError("history_limit must be a positive integer.")
        self._event_type_registry = event_type_registry
        self._subscriber_registry = subscriber_registry or SubscriberRegistry()
        self._persist_event = persist_event
        self._clock = clock or get_default_clock()
        self._published: Deque[Notification] = deque(maxlen=history_limit)
        self._unjournaled: Deque[uuid.UUID] = deque(maxlen=history_limit)

    def publish(
        self,
        *,
        event_type: str,
        source_engine: str,
        actor_id: str,
        correlation_id: uuid.UUID,
        payload: dict,
        causation_id: uuid.UUID | None = None,
    ) -> Notification:
        if not self._event_type_registry.is_registered(event_type):
            raise UnregisteredEventType(event_type)

        notification = Notification(
            event_id=uuid.uuid4(),
            event_type=event_type,
            source_engine=source_engine,
            actor_id=actor_id,
            correlation_id=correlation_id,
            causation_id=causation_id,
            payload=payload,
            created_at=self._clock.now_utc(),
        )

        if self._persist_event is not None:
            self._journal(notification)

        self._published.append(notification)
        logger.info(f"Published {event_type} (event_id: {notification.event_id})")

        dispatch(notification, self._subscriber_registry)
        return notification

    def _journal(self, notification: Notification) -> None:
        try:
            persist_result = self._persist_event(notification)
        except Exception as exc:
            self._unjournaled.append(notification.event_id)
            logger.error(
                f"Journal write failed for {notification.event_type} "
                f"(event_id: {notification.event_id}): {exc}",
                exc_info=True,
            )
            return

        if not _is_persist_accepted(persist_result):
            self._unjournaled.append(notification.event_id)
            logger.warning(
                f"Journal did not accept {notification.event_type} "
                f"(event_id: {notification.event_id}): {persist_result}"
            )

    @property
    def unjournaled(self) -> tuple[uuid.UUID, ...]:
        """event_ids published while the journal failed or refused them."""
        return tuple(self._unjournaled)

    @property
    def history_limit(self) -> int:
        return self._published.maxlen

    @property
    def event_type_registry(self) -> EventTypeRegistry:
        return self._event_type_registry

    @property
    def subscriber_registry(self) -> SubscriberRegistry:
        return self._subscriber_registry

    @property
    def published(self) -> tuple[Notification, ...]:
        return tuple(self._published)

    def published_of_type(self, event_type: str) -> list[Notification]:
        return [n for n in self._published if n.event_type == event_type]
