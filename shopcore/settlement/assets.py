"""
Shop Core Settlement — Fungible Asset Contract
================================================
The ledger moves value only through this interface.
A transfer either completes and returns True, or is
rejected, returns False and changes nothing.

Amounts are integers in the asset's smallest unit.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Protocol, Tuple

logger = logging.getLogger("shop.settlement")


class SettlementAssetKind(Enum):
    PAYMENT = "PAYMENT"
    REWARD = "REWARD"


class SettlementAsset(Protocol):
    """Opaque fungible balance capability."""

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move amount from sender's own balance."""
        ...  # pragma: no cover

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int,
    ) -> bool:
        """Move amount out of owner's balance using spender's allowance."""
        ...  # pragma: no cover

    def balance_of(self, account: str) -> int:
        ...  # pragma: no cover


class InMemorySettlementAsset:
    """
    Deterministic in-memory asset used for bootstrap/tests.

    Supports balances, allowances and forced rejection of the next
    N transfers so failure paths can be exercised without
    draining balances.
    """

    def __init__(self, symbol: str, balances: Dict[str, int] | None = None):
        if not symbol:
            raise ValueError("symbol must be non-empty.")
        self._symbol = symbol
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._forced_rejections = 0
        for account, amount in (balances or {}).items():
            self.mint(account, amount)

    @property
    def symbol(self) -> str:
        return self._symbol

    # ── Setup helpers ─────────────────────────────────────────

    def mint(self, account: str, amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError("amount must be a non-negative integer.")
        self._balances[account] = self._balances.get(account, 0) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError("amount must be a non-negative integer.")
        self._allowances[(owner, spender)] = amount

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def reject_next_transfers(self, count: int = 1) -> None:
        self._forced_rejections += count

    # ── Asset contract ────────────────────────────────────────

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if self._consume_forced_rejection():
            return False
        if not self._valid_amount(amount) or self.balance_of(sender) < amount:
            logger.debug(
                f"{self._symbol} transfer rejected: {sender} → {recipient} ({amount})"
            )
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int,
    ) -> bool:
        if self._consume_forced_rejection():
            return False
        if not self._valid_amount(amount):
            return False
        allowed = self.allowance(owner, spender)
        if allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                f"{self._symbol} transfer_from rejected: {owner} → {recipient} "
                f"({amount}, allowance {allowed})"
            )
            return False
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, recipient, amount)
        return True

    # ── Internals ─────────────────────────────────────────────

    def _consume_forced_rejection(self) -> bool:
        if self._forced_rejections > 0:
            self._forced_rejections -= 1
            return True
        return False

    @staticmethod
    def _valid_amount(amount: int) -> bool:
        return isinstance(amount, int) and not isinstance(amount, bool) and amount >= 0

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
