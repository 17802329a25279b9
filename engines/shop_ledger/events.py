"""
Shop Ledger Engine — Event Types and Payload Builders
=======================================================
The ledger builds payloads only. Envelopes, journaling and
delivery to observers belong to shopcore.events.
"""

from __future__ import annotations

from shopcore.commands.base import Command
from shopcore.commands.rejection import RejectionReason
from shopcore.settlement.assets import SettlementAssetKind


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

PURCHASE_COMPLETED_V1 = "shop_ledger.purchase.completed.v1"
REWARD_ISSUED_V1 = "shop_ledger.reward.issued.v1"
REORDER_REQUESTED_V1 = "shop_ledger.reorder.requested.v1"
ORDER_RECEIVED_V1 = "shop_ledger.order.received.v1"
ORDER_DECLINED_V1 = "shop_ledger.order.declined.v1"
CREDIT_RATING_UPDATED_V1 = "shop_ledger.rating.updated.v1"
INVENTORY_UPDATED_V1 = "shop_ledger.inventory.updated.v1"
PAYMENT_MADE_V1 = "shop_ledger.payment.made.v1"
PRICES_UPDATED_V1 = "shop_ledger.prices.updated.v1"
FUNDS_WITHDRAWN_V1 = "shop_ledger.funds.withdrawn.v1"

SHOP_LEDGER_EVENT_TYPES = (
    PURCHASE_COMPLETED_V1,
    REWARD_ISSUED_V1,
    REORDER_REQUESTED_V1,
    ORDER_RECEIVED_V1,
    ORDER_DECLINED_V1,
    CREDIT_RATING_UPDATED_V1,
    INVENTORY_UPDATED_V1,
    PAYMENT_MADE_V1,
    PRICES_UPDATED_V1,
    FUNDS_WITHDRAWN_V1,
)


def register_shop_ledger_event_types(event_type_registry) -> None:
    for event_type in sorted(SHOP_LEDGER_EVENT_TYPES):
        event_type_registry.register(event_type)


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def _base_payload(command: Command) -> dict:
    return {
        "actor_id": command.actor_id,
        "command_id": str(command.command_id),
        "correlation_id": str(command.correlation_id),
    }


def build_purchase_completed_payload(
    command: Command, *, buyer: str, quantity: int, total_price: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "buyer": buyer,
        "quantity": quantity,
        "total_price": total_price,
    })
    return payload


def build_reward_issued_payload(
    command: Command, *, recipient: str, quantity: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({"recipient": recipient, "quantity": quantity})
    return payload


def build_reorder_requested_payload(
    command: Command, *, quantity: int, distributor: str,
) -> dict:
    payload = _base_payload(command)
    payload.update({"quantity": quantity, "distributor": distributor})
    return payload


def build_order_received_payload(
    command: Command, *, quantity: int, payment: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({"quantity": quantity, "payment": payment})
    return payload


def build_order_declined_payload(
    command: Command, *, quantity: int, reason: RejectionReason,
) -> dict:
    payload = _base_payload(command)
    payload.update({"quantity": quantity, "reason": reason.to_dict()})
    return payload


def build_credit_rating_updated_payload(
    command: Command, *, distributor: str, rating: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({"distributor": distributor, "rating": rating})
    return payload


def build_inventory_updated_payload(command: Command, *, inventory: int) -> dict:
    payload = _base_payload(command)
    payload["inventory"] = inventory
    return payload


def build_payment_made_payload(
    command: Command, *, recipient: str, amount: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({"recipient": recipient, "amount": amount})
    return payload


def build_prices_updated_payload(
    command: Command, *, retail_price: int, wholesale_price: int,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "retail_price": retail_price,
        "wholesale_price": wholesale_price,
    })
    return payload


def build_funds_withdrawn_payload(
    command: Command, *, asset: SettlementAssetKind, amount: int, recipient: str,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "asset": asset.value,
        "amount": amount,
        "recipient": recipient,
    })
    return payload
