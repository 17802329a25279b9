"""
Shop Core Journal — Journal Entry Model
=========================================
RULES:
- No deletes, no overwrites, no updates after persistence
- Every entry links to its predecessor via previous_event_hash
- Ordering is the insertion sequence
"""

import uuid

from django.db import models


class JournalEntry(models.Model):

    sequence = models.BigAutoField(primary_key=True)

    event_id = models.UUIDField(
        unique=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Notification identifier. Enforces idempotency.",
    )

    event_type = models.CharField(max_length=255)
    event_version = models.PositiveSmallIntegerField(default=1)
    source_engine = models.CharField(max_length=100)
    actor_id = models.CharField(max_length=255)

    correlation_id = models.UUIDField()
    causation_id = models.UUIDField(null=True, blank=True)

    payload = models.JSONField()

    created_at = models.DateTimeField(
        help_text="When the notification was created at source.",
    )
    received_at = models.DateTimeField(auto_now_add=True)

    previous_event_hash = models.CharField(max_length=64)
    event_hash = models.CharField(max_length=64)

    class Meta:
        db_table = "shop_ledger_journal"
        ordering = ["sequence"]
        indexes = [
            models.Index(fields=["event_type"], name="idx_journal_type"),
            models.Index(fields=["correlation_id"], name="idx_journal_correlation"),
        ]

    def __str__(self) -> str:
        return f"{self.sequence}:{self.event_type}"
