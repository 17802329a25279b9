"""
Shop Ledger Engine — State
============================
ShopState is the single mutable resource of a ledger. It is owned by
exactly one ShopLedgerService and changes only through its operations.

ProductDelivery is transient: built per receive-order call, discarded
after validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Tuple


@dataclass
class ShopState:
    inventory: int
    retail_price: int
    wholesale_price: int
    distributor: str
    distributor_rating: Dict[str, int] = field(default_factory=dict)

    def rating_of(self, identity: str) -> int:
        return self.distributor_rating.get(identity, 0)

    def increment_rating(self, identity: str) -> int:
        rating = self.rating_of(identity) + 1
        self.distributor_rating[identity] = rating
        return rating

    def snapshot(self) -> dict:
        return {
            "inventory": self.inventory,
            "retail_price": self.retail_price,
            "wholesale_price": self.wholesale_price,
            "distributor": self.distributor,
            "distributor_rating": dict(self.distributor_rating),
        }


@dataclass(frozen=True)
class ProductDelivery:
    """One expiration date per delivered unit."""
    quantity: int
    expiration_dates: Tuple[datetime, ...]
