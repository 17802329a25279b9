"""
Shop Core Journal — Hash Computation
======================================
    entry_hash = SHA256(canonical_json(content) + previous_entry_hash)

- Canonical JSON: sorted keys, compact separators
- First entry chains from GENESIS_HASH
- Same input always produces same output
"""

import hashlib
import json
from typing import Any

GENESIS_HASH = "GENESIS"


def canonical_serialize(content: Any) -> str:
    return json.dumps(
        content,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def compute_event_hash(content: Any, previous_event_hash: str) -> str:
    """64-character lowercase hex SHA-256 digest."""
    hash_input = canonical_serialize(content) + previous_event_hash
    return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()


def hashable_content(event_id, event_type: str, payload: dict) -> dict:
    return {
        "event_id": str(event_id),
        "event_type": event_type,
        "payload": payload,
    }
