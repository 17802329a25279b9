"""
Shop Ledger Engine — Configuration
====================================
Reorder parameters and the receive-order policy are configuration,
fixed for the lifetime of a ledger instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Mapping


# Largest amount representable by the settlement assets (unsigned 256-bit).
MAX_AMOUNT = 2**256 - 1

DEFAULT_EXPIRATION_WINDOW = timedelta(weeks=4)

DEFAULT_HISTORY_LIMIT = 1000


class ReceivePolicy(Enum):
    """
    STRICT  — reject the whole delivery on any violation.
    LENIENT — record the delivery as declined, withhold inventory and payment.
    """
    STRICT = "STRICT"
    LENIENT = "LENIENT"


@dataclass(frozen=True)
class LedgerConfig:
    reorder_threshold: int = 50
    reorder_quantity: int = 500
    initial_inventory: int = 0
    receive_policy: ReceivePolicy = ReceivePolicy.STRICT
    expiration_window: timedelta = DEFAULT_EXPIRATION_WINDOW
    custody_account: str = "shop-ledger"
    max_amount: int = MAX_AMOUNT
    history_limit: int = DEFAULT_HISTORY_LIMIT

    def __post_init__(self) -> None:
        for name in (
            "reorder_threshold",
            "reorder_quantity",
            "initial_inventory",
            "max_amount",
            "history_limit",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}.")

        if self.reorder_quantity == 0:
            raise ValueError("reorder_quantity must be positive.")

        if self.history_limit == 0:
            raise ValueError("history_limit must be positive.")

        if self.initial_inventory > self.max_amount:
            raise ValueError("initial_inventory exceeds max_amount.")

        if not isinstance(self.receive_policy, ReceivePolicy):
            raise ValueError(f"receive_policy '{self.receive_policy}' not valid.")

        if not isinstance(self.expiration_window, timedelta) or self.expiration_window <= timedelta(0):
            raise ValueError("expiration_window must be a positive timedelta.")

        if not self.custody_account or not isinstance(self.custody_account, str):
            raise ValueError("custody_account must be a non-empty string.")

    @property
    def is_strict(self) -> bool:
        return self.receive_policy is ReceivePolicy.STRICT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LedgerConfig:
        """
        Build a config from plain host settings.

        receive_policy may be given by name ("strict"/"LENIENT");
        expiration_window as a timedelta or a number of seconds.
        Unknown keys are rejected.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown ledger config keys: {sorted(unknown)}")

        values = dict(data)
        policy = values.get("receive_policy")
        if isinstance(policy, str):
            try:
                values["receive_policy"] = ReceivePolicy(policy.upper())
            except ValueError:
                raise ValueError(f"receive_policy '{policy}' not valid.") from None

        window = values.get("expiration_window")
        if isinstance(window, (int, float)) and not isinstance(window, bool):
            values["expiration_window"] = timedelta(seconds=window)

        return cls(**values)
