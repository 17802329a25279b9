"""
Shop Core Event Bus — Public API
==================================
Engines publish notifications; observers subscribe to them.
"""

from shopcore.events.dispatcher import dispatch
from shopcore.events.envelope import Notification
from shopcore.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
    SelfSubscriptionError,
    UnregisteredEventType,
)
from shopcore.events.publisher import EventPublisher
from shopcore.events.registry import EventTypeRegistry, SubscriberRegistry

__all__ = [
    "dispatch",
    "Notification",
    "EventPublisher",
    "EventTypeRegistry",
    "SubscriberRegistry",
    "EventBusError",
    "InvalidEventTypeFormat",
    "UnregisteredEventType",
    "DuplicateSubscriberError",
    "SelfSubscriptionError",
]
