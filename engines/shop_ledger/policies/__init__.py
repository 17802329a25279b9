"""
Shop Ledger Engine — Policies
===============================
Each policy returns None when the command may proceed, or a
RejectionReason explaining why it may not. Policies never mutate
state, so every rejection happens before the first write.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from shopcore.access import AccessControl
from shopcore.commands.base import Command
from shopcore.commands.rejection import ReasonCode, RejectionReason
from shopcore.time.temporal import TimeWindow, is_timezone_aware


# ── Purchase ──────────────────────────────────────────────────

def positive_quantity_policy(command: Command) -> Optional[RejectionReason]:
    quantity = command.payload.get("quantity", 0)
    if quantity <= 0:
        return RejectionReason(
            code=ReasonCode.INVALID_QUANTITY,
            message=f"Quantity must be positive, got {quantity}.",
            policy_name="positive_quantity_policy",
        )
    return None


def sufficient_inventory_policy(
    command: Command,
    inventory: int,
) -> Optional[RejectionReason]:
    quantity = command.payload.get("quantity", 0)
    if inventory < quantity:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_INVENTORY,
            message=(
                f"Insufficient inventory: {inventory} available, "
                f"{quantity} requested."
            ),
            policy_name="sufficient_inventory_policy",
        )
    return None


def amount_overflow_policy(
    amount: int,
    max_amount: int,
    *,
    label: str,
) -> Optional[RejectionReason]:
    """Any computed amount above the representable range is refused."""
    if amount > max_amount:
        return RejectionReason(
            code=ReasonCode.ARITHMETIC_OVERFLOW,
            message=f"{label} {amount} exceeds the maximum amount {max_amount}.",
            policy_name="amount_overflow_policy",
        )
    return None


# ── Authorization ─────────────────────────────────────────────

def privileged_caller_policy(
    command: Command,
    access_control: AccessControl,
) -> Optional[RejectionReason]:
    if not access_control.is_privileged(command.actor_id):
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=f"Caller '{command.actor_id}' is not privileged.",
            policy_name="privileged_caller_policy",
        )
    return None


def registered_distributor_policy(
    command: Command,
    distributor: str,
) -> Optional[RejectionReason]:
    if command.actor_id != distributor:
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=f"Caller '{command.actor_id}' is not the registered distributor.",
            policy_name="registered_distributor_policy",
        )
    return None


# ── Delivery ──────────────────────────────────────────────────

def delivery_quantity_policy(
    command: Command,
    reorder_quantity: int,
) -> Optional[RejectionReason]:
    quantity = command.payload.get("quantity", 0)
    if quantity != reorder_quantity:
        return RejectionReason(
            code=ReasonCode.INVALID_DELIVERY,
            message=(
                f"Delivered quantity {quantity} does not match "
                f"reorder quantity {reorder_quantity}."
            ),
            policy_name="delivery_quantity_policy",
        )
    return None


def expiration_count_policy(command: Command) -> Optional[RejectionReason]:
    quantity = command.payload.get("quantity", 0)
    dates = command.payload.get("expiration_dates", ())
    if len(dates) != quantity:
        return RejectionReason(
            code=ReasonCode.INVALID_DELIVERY,
            message=(
                f"Expected {quantity} expiration dates, got {len(dates)}."
            ),
            policy_name="expiration_count_policy",
        )
    return None


def expiration_window_policy(
    command: Command,
    window_length: timedelta,
) -> Optional[RejectionReason]:
    """
    Every unit must expire within [issued_at, issued_at + window_length],
    both ends inclusive. Naive datetimes cannot be placed in the window.
    """
    window = TimeWindow.starting_at(command.issued_at, window_length)
    for index, date in enumerate(command.payload.get("expiration_dates", ())):
        if not is_timezone_aware(date):
            return RejectionReason(
                code=ReasonCode.INVALID_DELIVERY,
                message=f"Expiration date #{index} is not timezone-aware.",
                policy_name="expiration_window_policy",
            )
        if not window.contains(date):
            return RejectionReason(
                code=ReasonCode.INVALID_DELIVERY,
                message=(
                    f"Expiration date #{index} ({date.isoformat()}) outside "
                    f"[{window.start.isoformat()}, {window.end.isoformat()}]."
                ),
                policy_name="expiration_window_policy",
            )
    return None
