"""
Shop Core Event Bus — Notification Envelope
=============================================
The structured record every published notification travels in.
Payload meaning belongs to the emitting engine; the envelope only
carries identity, causality and time.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Notification:
    event_id: uuid.UUID
    event_type: str
    source_engine: str
    actor_id: str
    correlation_id: uuid.UUID
    payload: dict
    created_at: datetime
    causation_id: Optional[uuid.UUID] = None
    event_version: int = 1
    reference: dict = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.event_id, uuid.UUID):
            raise ValueError("event_id must be UUID.")
        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")
        if self.event_version < 1:
            raise ValueError("event_version must be >= 1.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "event_version": self.event_version,
            "source_engine": self.source_engine,
            "actor_id": self.actor_id,
            "correlation_id": self.correlation_id,
            "causation_id": self.causation_id,
            "payload": dict(self.payload),
            "reference": dict(self.reference),
            "created_at": self.created_at,
        }
