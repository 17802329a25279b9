"""
Shop Ledger Engine — Errors
=============================
Every failure is terminal for the call that raised it.
Retrying means resubmitting the whole operation.

Each error carries the RejectionReason produced by the policy
or transfer step that failed.
"""

from __future__ import annotations

from typing import Dict, Type

from shopcore.commands.rejection import ReasonCode, RejectionReason


class ShopLedgerError(Exception):
    """Base error for Shop Ledger operations."""

    code = "SHOP_LEDGER_ERROR"

    def __init__(self, reason: RejectionReason):
        self.reason = reason
        super().__init__(f"[{reason.code}] {reason.message}")


class InvalidQuantity(ShopLedgerError):
    code = ReasonCode.INVALID_QUANTITY


class InsufficientInventory(ShopLedgerError):
    code = ReasonCode.INSUFFICIENT_INVENTORY


class PaymentFailed(ShopLedgerError):
    code = ReasonCode.PAYMENT_FAILED


class RewardTransferFailed(ShopLedgerError):
    code = ReasonCode.REWARD_TRANSFER_FAILED


class Unauthorized(ShopLedgerError):
    code = ReasonCode.UNAUTHORIZED


class InvalidDelivery(ShopLedgerError):
    code = ReasonCode.INVALID_DELIVERY


class DistributorPaymentFailed(ShopLedgerError):
    code = ReasonCode.DISTRIBUTOR_PAYMENT_FAILED


class WithdrawalFailed(ShopLedgerError):
    code = ReasonCode.WITHDRAWAL_FAILED


class ArithmeticOverflow(ShopLedgerError):
    code = ReasonCode.ARITHMETIC_OVERFLOW


ERRORS_BY_CODE: Dict[str, Type[ShopLedgerError]] = {
    cls.code: cls
    for cls in (
        InvalidQuantity,
        InsufficientInventory,
        PaymentFailed,
        RewardTransferFailed,
        Unauthorized,
        InvalidDelivery,
        DistributorPaymentFailed,
        WithdrawalFailed,
        ArithmeticOverflow,
    )
}


def error_for_reason(reason: RejectionReason) -> ShopLedgerError:
    """Build the taxonomy error matching a rejection code."""
    error_cls = ERRORS_BY_CODE.get(reason.code, ShopLedgerError)
    return error_cls(reason)
