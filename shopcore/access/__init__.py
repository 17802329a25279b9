"""
Shop Core Access — Privileged Caller Capability
=================================================
The ledger never decides who is privileged. It asks an injected
AccessControl and treats the answer as final.
"""

from __future__ import annotations

from typing import Iterable, Protocol


class AccessControl(Protocol):
    def is_privileged(self, identity: str) -> bool:
        ...  # pragma: no cover


class OwnerAccessControl:
    """Exactly one privileged identity, fixed at construction."""

    def __init__(self, owner: str):
        if not owner or not isinstance(owner, str):
            raise ValueError("owner must be a non-empty string.")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_privileged(self, identity: str) -> bool:
        return identity == self._owner


class InMemoryAccessControl:
    """
    Deterministic set-based access control used for bootstrap/tests.
    """

    def __init__(self, identities: Iterable[str] | None = None):
        self._identities: set[str] = set()
        for identity in identities or ():
            self.grant(identity)

    def grant(self, identity: str) -> None:
        if not identity or not isinstance(identity, str):
            raise ValueError("identity must be a non-empty string.")
        self._identities.add(identity)

    def revoke(self, identity: str) -> None:
        self._identities.discard(identity)

    def is_privileged(self, identity: str) -> bool:
        return identity in self._identities


__all__ = [
    "AccessControl",
    "OwnerAccessControl",
    "InMemoryAccessControl",
]
