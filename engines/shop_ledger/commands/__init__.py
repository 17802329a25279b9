"""
Shop Ledger Engine — Request Commands
=======================================
Typed ledger requests that convert into canonical Command objects.

Requests check structure only (types, signs). Business rules such as
"quantity must be positive" or "caller must be the distributor" are
policies, evaluated by the service against current state.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from shopcore.commands.base import Command
from shopcore.settlement.assets import SettlementAssetKind


# ══════════════════════════════════════════════════════════════
# COMMAND TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

SHOP_LEDGER_PURCHASE_REQUEST = "shop_ledger.purchase.execute.request"
SHOP_LEDGER_ORDER_RECEIVE_REQUEST = "shop_ledger.order.receive.request"
SHOP_LEDGER_PRICES_UPDATE_REQUEST = "shop_ledger.prices.update.request"
SHOP_LEDGER_FUNDS_WITHDRAW_REQUEST = "shop_ledger.funds.withdraw.request"

SHOP_LEDGER_COMMAND_TYPES = frozenset({
    SHOP_LEDGER_PURCHASE_REQUEST,
    SHOP_LEDGER_ORDER_RECEIVE_REQUEST,
    SHOP_LEDGER_PRICES_UPDATE_REQUEST,
    SHOP_LEDGER_FUNDS_WITHDRAW_REQUEST,
})


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _command(
    command_type: str,
    payload: dict,
    *,
    actor_id: str,
    command_id: uuid.UUID,
    correlation_id: uuid.UUID,
    issued_at: datetime,
) -> Command:
    return Command(
        command_id=command_id,
        command_type=command_type,
        actor_id=actor_id,
        payload=payload,
        issued_at=issued_at,
        correlation_id=correlation_id,
        source_engine="shop_ledger",
    )


# ══════════════════════════════════════════════════════════════
# REQUEST COMMANDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PurchaseRequest:
    """Customer buys `quantity` units at the current retail price."""
    quantity: int

    def __post_init__(self):
        if not _is_int(self.quantity):
            raise TypeError("quantity must be an integer.")

    def to_command(self, **command_args) -> Command:
        return _command(
            SHOP_LEDGER_PURCHASE_REQUEST,
            {"quantity": self.quantity},
            **command_args,
        )


@dataclass(frozen=True)
class ReceiveOrderRequest:
    """Distributor delivers units, one expiration date per unit."""
    quantity: int
    expiration_dates: Tuple[datetime, ...]

    def __post_init__(self):
        if not _is_int(self.quantity):
            raise TypeError("quantity must be an integer.")
        if isinstance(self.expiration_dates, (str, bytes)):
            raise TypeError("expiration_dates must be a sequence of datetimes.")
        dates = tuple(self.expiration_dates)
        for date in dates:
            if not isinstance(date, datetime):
                raise TypeError(
                    f"expiration date must be datetime, got {type(date).__name__}."
                )
        object.__setattr__(self, "expiration_dates", dates)

    def to_command(self, **command_args) -> Command:
        return _command(
            SHOP_LEDGER_ORDER_RECEIVE_REQUEST,
            {
                "quantity": self.quantity,
                "expiration_dates": self.expiration_dates,
            },
            **command_args,
        )


@dataclass(frozen=True)
class UpdatePricesRequest:
    """Overwrite both unit prices. Zero is a valid price."""
    retail_price: int
    wholesale_price: int

    def __post_init__(self):
        for name in ("retail_price", "wholesale_price"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer.")

    def to_command(self, **command_args) -> Command:
        return _command(
            SHOP_LEDGER_PRICES_UPDATE_REQUEST,
            {
                "retail_price": self.retail_price,
                "wholesale_price": self.wholesale_price,
            },
            **command_args,
        )


@dataclass(frozen=True)
class WithdrawRequest:
    """Move `amount` of an asset out of ledger custody to the caller."""
    asset: SettlementAssetKind
    amount: int

    def __post_init__(self):
        if isinstance(self.asset, str):
            try:
                object.__setattr__(self, "asset", SettlementAssetKind(self.asset.upper()))
            except ValueError:
                raise ValueError(f"asset '{self.asset}' not valid.") from None
        if not isinstance(self.asset, SettlementAssetKind):
            raise ValueError(f"asset '{self.asset}' not valid.")
        if not _is_int(self.amount) or self.amount < 0:
            raise ValueError("amount must be a non-negative integer.")

    def to_command(self, **command_args) -> Command:
        return _command(
            SHOP_LEDGER_FUNDS_WITHDRAW_REQUEST,
            {"asset": self.asset, "amount": self.amount},
            **command_args,
        )
