"""
Shop Core Journal — Persistence Service
=========================================
The single write path for journal entries:

    persist_event(notification)

Write flow:
    1. Idempotency check on event_id
    2. Link to the latest entry's hash (GENESIS for the first)
    3. Atomic save

A rejected write returns JournalResult(accepted=False); it never
half-writes an entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import IntegrityError, transaction

from shopcore.events.envelope import Notification
from shopcore.journal.hashing import (
    GENESIS_HASH,
    compute_event_hash,
    hashable_content,
)
from shopcore.journal.models import JournalEntry

logger = logging.getLogger("shop.journal")


class JournalRejectionCode:
    DUPLICATE_EVENT = "DUPLICATE_EVENT"
    TRANSACTION_ABORTED = "TRANSACTION_ABORTED"


@dataclass(frozen=True)
class JournalResult:
    accepted: bool
    event_hash: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class ChainVerification:
    valid: bool
    entries_checked: int
    broken_at_sequence: Optional[int] = None


def _latest_hash(lock: bool) -> str:
    query = JournalEntry.objects.order_by("-sequence")
    if lock:
        query = query.select_for_update()
    latest = query.values_list("event_hash", flat=True).first()
    return latest if latest is not None else GENESIS_HASH


def persist_event(notification: Notification) -> JournalResult:
    if JournalEntry.objects.filter(event_id=notification.event_id).exists():
        return JournalResult(
            accepted=False,
            code=JournalRejectionCode.DUPLICATE_EVENT,
            message=f"Event {notification.event_id} already journaled.",
        )

    try:
        with transaction.atomic():
            previous_hash = _latest_hash(lock=True)
            event_hash = compute_event_hash(
                hashable_content(
                    notification.event_id,
                    notification.event_type,
                    notification.payload,
                ),
                previous_hash,
            )
            JournalEntry.objects.create(
                event_id=notification.event_id,
                event_type=notification.event_type,
                event_version=notification.event_version,
                source_engine=notification.source_engine,
                actor_id=notification.actor_id,
                correlation_id=notification.correlation_id,
                causation_id=notification.causation_id,
                payload=notification.payload,
                created_at=notification.created_at,
                previous_event_hash=previous_hash,
                event_hash=event_hash,
            )
    except IntegrityError as exc:
        logger.warning(f"Journal write aborted for {notification.event_id}: {exc}")
        return JournalResult(
            accepted=False,
            code=JournalRejectionCode.TRANSACTION_ABORTED,
            message=str(exc),
        )

    return JournalResult(accepted=True, event_hash=event_hash)


def verify_chain() -> ChainVerification:
    """Recompute every link in order; report the first broken entry."""
    previous_hash = GENESIS_HASH
    checked = 0
    for entry in JournalEntry.objects.order_by("sequence").iterator():
        expected = compute_event_hash(
            hashable_content(entry.event_id, entry.event_type, entry.payload),
            previous_hash,
        )
        if entry.previous_event_hash != previous_hash or entry.event_hash != expected:
            logger.error(f"Journal chain broken at sequence {entry.sequence}")
            return ChainVerification(
                valid=False,
                entries_checked=checked,
                broken_at_sequence=entry.sequence,
            )
        previous_hash = entry.event_hash
        checked += 1
    return ChainVerification(valid=True, entries_checked=checked)
