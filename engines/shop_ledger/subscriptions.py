"""
Shop Ledger Engine — Reorder Backlog Subscription
===================================================
An outside observer of ledger notifications (read-only).

Subscriptions:
- shop_ledger.reorder.requested → open a reorder signal
- shop_ledger.order.received    → close every open signal

The ledger re-signals on each below-threshold purchase, so several
open signals may describe the same need; one accepted delivery
settles all of them.
"""

from __future__ import annotations

from typing import Dict, List

from shopcore.events.envelope import Notification
from shopcore.events.registry import SubscriberRegistry
from engines.shop_ledger.events import ORDER_RECEIVED_V1, REORDER_REQUESTED_V1


REORDER_BACKLOG_SUBSCRIPTIONS: Dict[str, str] = {
    REORDER_REQUESTED_V1: "handle_reorder_requested",
    ORDER_RECEIVED_V1: "handle_order_received",
}


class ReorderBacklog:

    def __init__(self, subscriber_engine: str = "procurement"):
        self._subscriber_engine = subscriber_engine
        self._open: List[dict] = []
        self._fulfilled = 0
        self._received_units = 0

    def register(self, registry: SubscriberRegistry) -> None:
        for event_type, handler_name in sorted(REORDER_BACKLOG_SUBSCRIPTIONS.items()):
            registry.register_subscriber(
                event_type,
                getattr(self, handler_name),
                self._subscriber_engine,
            )

    def handle_reorder_requested(self, event: Notification) -> None:
        payload = event.payload
        self._open.append({
            "event_id": str(event.event_id),
            "quantity": int(payload["quantity"]),
            "distributor": payload["distributor"],
            "requested_at": event.created_at,
        })

    def handle_order_received(self, event: Notification) -> None:
        self._fulfilled += len(self._open)
        self._received_units += int(event.payload["quantity"])
        self._open.clear()

    @property
    def open_requests(self) -> tuple[dict, ...]:
        return tuple(self._open)

    @property
    def open_count(self) -> int:
        return len(self._open)

    @property
    def fulfilled_count(self) -> int:
        return self._fulfilled

    @property
    def received_units(self) -> int:
        return self._received_units
