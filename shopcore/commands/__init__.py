"""
Shop Core Command Layer
=========================
Every operation begins as a Command.
Every executed Command produces exactly one Outcome.
"""

from shopcore.commands.base import (
    Command,
    derive_rejection_event_type,
    derive_source_engine,
)
from shopcore.commands.outcomes import (
    CommandOutcome,
    CommandStatus,
)
from shopcore.commands.rejection import (
    ReasonCode,
    RejectionReason,
)

__all__ = [
    "Command",
    "derive_rejection_event_type",
    "derive_source_engine",
    "CommandOutcome",
    "CommandStatus",
    "RejectionReason",
    "ReasonCode",
]
