"""
Shop Core Command Layer — Rejection Model
===========================================
Structured rejection reasons for denied commands.

A RejectionReason is an explanation, not an exception.
Engines raise their own error types carrying one.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for command rejection.

    Fields:
        code:        Machine-readable rejection code (e.g. 'INSUFFICIENT_INVENTORY').
        message:     Human-readable explanation.
        policy_name: Name of the policy that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Purchase ──────────────────────────────────────────────
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    REWARD_TRANSFER_FAILED = "REWARD_TRANSFER_FAILED"

    # ── Authorization ─────────────────────────────────────────
    UNAUTHORIZED = "UNAUTHORIZED"

    # ── Delivery ──────────────────────────────────────────────
    INVALID_DELIVERY = "INVALID_DELIVERY"
    DISTRIBUTOR_PAYMENT_FAILED = "DISTRIBUTOR_PAYMENT_FAILED"

    # ── Administration ────────────────────────────────────────
    WITHDRAWAL_FAILED = "WITHDRAWAL_FAILED"

    # ── Arithmetic ────────────────────────────────────────────
    ARITHMETIC_OVERFLOW = "ARITHMETIC_OVERFLOW"
