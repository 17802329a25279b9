"""
Shop Core Settlement — Public API
"""

from shopcore.settlement.assets import (
    InMemorySettlementAsset,
    SettlementAsset,
    SettlementAssetKind,
)

__all__ = [
    "InMemorySettlementAsset",
    "SettlementAsset",
    "SettlementAssetKind",
]
