"""
Shop Ledger Engine — Application Service
==========================================
The inventory/payment state machine.

Orchestrates, per command:
1. Policy evaluation against current state (no writes)
2. Value movement through the injected settlement assets
3. ShopState mutation
4. Notifications through the event publisher

Atomicity: every precondition is checked before the first write.
Two partial-failure asymmetries are kept on purpose:
- purchase: a failed reward transfer leaves the payment pulled and
  the inventory decremented
- receive order: a failed distributor payment leaves the inventory
  credited (and the rating untouched)
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, NamedTuple, Optional, Sequence

from shopcore.access import AccessControl
from shopcore.commands.base import Command
from shopcore.commands.outcomes import CommandOutcome
from shopcore.commands.rejection import ReasonCode, RejectionReason
from shopcore.events.envelope import Notification
from shopcore.events.publisher import EventPublisher
from shopcore.events.registry import EventTypeRegistry
from shopcore.settlement.assets import SettlementAsset, SettlementAssetKind
from shopcore.time.clock import Clock, get_default_clock
from engines.shop_ledger.commands import (
    SHOP_LEDGER_COMMAND_TYPES,
    SHOP_LEDGER_FUNDS_WITHDRAW_REQUEST,
    SHOP_LEDGER_ORDER_RECEIVE_REQUEST,
    SHOP_LEDGER_PRICES_UPDATE_REQUEST,
    SHOP_LEDGER_PURCHASE_REQUEST,
    PurchaseRequest,
    ReceiveOrderRequest,
    UpdatePricesRequest,
    WithdrawRequest,
)
from engines.shop_ledger.config import LedgerConfig
from engines.shop_ledger.errors import (
    DistributorPaymentFailed,
    PaymentFailed,
    RewardTransferFailed,
    ShopLedgerError,
    WithdrawalFailed,
    error_for_reason,
)
from engines.shop_ledger.events import (
    CREDIT_RATING_UPDATED_V1,
    FUNDS_WITHDRAWN_V1,
    INVENTORY_UPDATED_V1,
    ORDER_DECLINED_V1,
    ORDER_RECEIVED_V1,
    PAYMENT_MADE_V1,
    PRICES_UPDATED_V1,
    PURCHASE_COMPLETED_V1,
    REORDER_REQUESTED_V1,
    REWARD_ISSUED_V1,
    build_credit_rating_updated_payload,
    build_funds_withdrawn_payload,
    build_inventory_updated_payload,
    build_order_declined_payload,
    build_order_received_payload,
    build_payment_made_payload,
    build_prices_updated_payload,
    build_purchase_completed_payload,
    build_reorder_requested_payload,
    build_reward_issued_payload,
    register_shop_ledger_event_types,
)
from engines.shop_ledger.policies import (
    amount_overflow_policy,
    delivery_quantity_policy,
    expiration_count_policy,
    expiration_window_policy,
    positive_quantity_policy,
    privileged_caller_policy,
    registered_distributor_policy,
    sufficient_inventory_policy,
)
from engines.shop_ledger.state import ProductDelivery, ShopState

logger = logging.getLogger("shop.ledger")

SOURCE_ENGINE = "shop_ledger"


# ══════════════════════════════════════════════════════════════
# EXECUTION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ShopExecutionResult:
    outcome: CommandOutcome
    value: Any
    notifications: tuple[Notification, ...]


class _Handled(NamedTuple):
    value: Any
    declined: Optional[RejectionReason] = None


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class ShopLedgerService:
    """
    Shop Ledger engine service.

    Owns one ShopState. Value moves only through the payment and
    reward assets; authorization comes only from access_control.

    Usage:
        ledger = ShopLedgerService(
            distributor="acme-distribution",
            retail_price=10,
            wholesale_price=5,
            payment_asset=payment,
            reward_asset=reward,
            access_control=OwnerAccessControl("acme-distribution"),
            config=LedgerConfig(initial_inventory=60),
        )
        total = ledger.purchase(15, caller="customer-1")
    """

    def __init__(
        self,
        *,
        distributor: str,
        retail_price: int,
        wholesale_price: int,
        payment_asset: SettlementAsset,
        reward_asset: SettlementAsset,
        access_control: AccessControl,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        publisher: EventPublisher | None = None,
    ):
        if not distributor or not isinstance(distributor, str):
            raise ValueError("distributor must be a non-empty string.")
        for name, price in (("retail_price", retail_price), ("wholesale_price", wholesale_price)):
            if not isinstance(price, int) or isinstance(price, bool) or price < 0:
                raise ValueError(f"{name} must be a non-negative integer.")

        self._config = config or LedgerConfig()
        self._clock = clock or get_default_clock()
        self._assets: Dict[SettlementAssetKind, SettlementAsset] = {
            SettlementAssetKind.PAYMENT: payment_asset,
            SettlementAssetKind.REWARD: reward_asset,
        }
        self._access = access_control

        self._publisher = publisher or EventPublisher(
            event_type_registry=EventTypeRegistry(),
            clock=self._clock,
            history_limit=self._config.history_limit,
        )
        register_shop_ledger_event_types(self._publisher.event_type_registry)

        self._state = ShopState(
            inventory=self._config.initial_inventory,
            retail_price=retail_price,
            wholesale_price=wholesale_price,
            distributor=distributor,
        )
        self._outcomes: Deque[CommandOutcome] = deque(maxlen=self._config.history_limit)
        self._emitted: List[Notification] = []
        self._handlers: Dict[str, Callable[[Command], _Handled]] = {
            SHOP_LEDGER_PURCHASE_REQUEST: self._purchase,
            SHOP_LEDGER_ORDER_RECEIVE_REQUEST: self._receive_order,
            SHOP_LEDGER_PRICES_UPDATE_REQUEST: self._update_prices,
            SHOP_LEDGER_FUNDS_WITHDRAW_REQUEST: self._withdraw,
        }

    # ══════════════════════════════════════════════════════════
    # PUBLIC OPERATIONS
    # ══════════════════════════════════════════════════════════

    def purchase(self, quantity: int, caller: str) -> int:
        """Buy `quantity` units; returns the total price paid."""
        command = PurchaseRequest(quantity=quantity).to_command(**self._command_args(caller))
        return self.execute(command).value

    def receive_order(
        self,
        quantity: int,
        expiration_dates: Sequence,
        caller: str,
    ) -> bool:
        """
        Record a distributor delivery.

        Returns True when the delivery was credited and paid. Under the
        lenient policy an invalid delivery returns False instead of raising.
        """
        request = ReceiveOrderRequest(quantity=quantity, expiration_dates=expiration_dates)
        return self.execute(request.to_command(**self._command_args(caller))).value

    def update_prices(self, retail_price: int, wholesale_price: int, caller: str) -> None:
        request = UpdatePricesRequest(retail_price=retail_price, wholesale_price=wholesale_price)
        self.execute(request.to_command(**self._command_args(caller)))

    def withdraw(self, asset: SettlementAssetKind, amount: int, caller: str) -> None:
        request = WithdrawRequest(asset=asset, amount=amount)
        self.execute(request.to_command(**self._command_args(caller)))

    # ══════════════════════════════════════════════════════════
    # COMMAND EXECUTION
    # ══════════════════════════════════════════════════════════

    def execute(self, command: Command) -> ShopExecutionResult:
        if command.command_type not in SHOP_LEDGER_COMMAND_TYPES:
            raise ValueError(
                f"Unsupported shop ledger command type: {command.command_type}"
            )
        handler = self._handlers[command.command_type]

        self._emitted = []
        try:
            handled = handler(command)
        except ShopLedgerError as exc:
            self._outcomes.append(
                CommandOutcome.rejected(command.command_id, exc.reason, command.issued_at)
            )
            logger.info(
                f"Command {command.command_id} ({command.command_type}) rejected: "
                f"[{exc.reason.code}] {exc.reason.message}"
            )
            raise

        if handled.declined is not None:
            outcome = CommandOutcome.rejected(
                command.command_id, handled.declined, command.issued_at,
            )
        else:
            outcome = CommandOutcome.accepted(command.command_id, command.issued_at)
        self._outcomes.append(outcome)

        return ShopExecutionResult(
            outcome=outcome,
            value=handled.value,
            notifications=tuple(self._emitted),
        )

    def _command_args(self, caller: str) -> dict:
        return dict(
            actor_id=caller,
            command_id=uuid.uuid4(),
            correlation_id=uuid.uuid4(),
            issued_at=self._clock.now_utc(),
        )

    # ══════════════════════════════════════════════════════════
    # PURCHASE FLOW
    # ══════════════════════════════════════════════════════════

    def _purchase(self, command: Command) -> _Handled:
        quantity = command.payload["quantity"]
        buyer = command.actor_id
        custody = self._config.custody_account

        self._enforce(
            positive_quantity_policy(command)
            or sufficient_inventory_policy(command, self._state.inventory)
        )

        total_price = quantity * self._state.retail_price
        self._enforce(
            amount_overflow_policy(total_price, self._config.max_amount, label="Purchase total")
        )

        payment = self._assets[SettlementAssetKind.PAYMENT]
        if not payment.transfer_from(custody, buyer, custody, total_price):
            raise PaymentFailed(RejectionReason(
                code=ReasonCode.PAYMENT_FAILED,
                message=f"Payment of {total_price} from '{buyer}' was rejected.",
                policy_name="purchase_payment",
            ))

        self._state.inventory -= quantity

        reward = self._assets[SettlementAssetKind.REWARD]
        if not reward.transfer(custody, buyer, quantity):
            logger.warning(
                f"Reward transfer of {quantity} to '{buyer}' failed after payment "
                f"of {total_price} was taken; inventory now {self._state.inventory}"
            )
            raise RewardTransferFailed(RejectionReason(
                code=ReasonCode.REWARD_TRANSFER_FAILED,
                message=f"Reward transfer of {quantity} to '{buyer}' was rejected.",
                policy_name="purchase_reward",
            ))

        self._emit(command, PURCHASE_COMPLETED_V1, build_purchase_completed_payload(
            command, buyer=buyer, quantity=quantity, total_price=total_price,
        ))
        self._emit(command, REWARD_ISSUED_V1, build_reward_issued_payload(
            command, recipient=buyer, quantity=quantity,
        ))
        self._emit(command, INVENTORY_UPDATED_V1, build_inventory_updated_payload(
            command, inventory=self._state.inventory,
        ))
        logger.info(
            f"Purchase by '{buyer}': {quantity} units for {total_price}; "
            f"inventory {self._state.inventory}"
        )

        if self._state.inventory < self._config.reorder_threshold:
            self._trigger_reorder(command, self._config.reorder_quantity)

        return _Handled(total_price)

    # ══════════════════════════════════════════════════════════
    # REORDER TRIGGER
    # ══════════════════════════════════════════════════════════

    def _trigger_reorder(self, command: Command, quantity: int) -> None:
        """Signal only. Fulfillment happens outside the ledger."""
        distributor = self._state.distributor
        self._emit(command, REORDER_REQUESTED_V1, build_reorder_requested_payload(
            command, quantity=quantity, distributor=distributor,
        ))
        logger.info(
            f"Reorder of {quantity} requested from '{distributor}' "
            f"(inventory {self._state.inventory} < threshold "
            f"{self._config.reorder_threshold})"
        )

    # ══════════════════════════════════════════════════════════
    # RECEIVE-ORDER FLOW
    # ══════════════════════════════════════════════════════════

    def _receive_order(self, command: Command) -> _Handled:
        distributor = self._state.distributor
        custody = self._config.custody_account

        self._enforce(
            privileged_caller_policy(command, self._access)
            or registered_distributor_policy(command, distributor)
        )

        delivery = ProductDelivery(
            quantity=command.payload["quantity"],
            expiration_dates=command.payload["expiration_dates"],
        )
        violation = (
            delivery_quantity_policy(command, self._config.reorder_quantity)
            or expiration_count_policy(command)
            or expiration_window_policy(command, self._config.expiration_window)
        )
        if violation is not None:
            if self._config.is_strict:
                raise error_for_reason(violation)
            self._emit(command, ORDER_DECLINED_V1, build_order_declined_payload(
                command, quantity=delivery.quantity, reason=violation,
            ))
            logger.info(
                f"Delivery of {delivery.quantity} from '{distributor}' declined: "
                f"{violation.message}"
            )
            return _Handled(False, declined=violation)

        payment_due = delivery.quantity * self._state.wholesale_price
        self._enforce(
            amount_overflow_policy(payment_due, self._config.max_amount, label="Distributor payment")
            or amount_overflow_policy(
                self._state.inventory + delivery.quantity,
                self._config.max_amount,
                label="Inventory",
            )
        )

        self._state.inventory += delivery.quantity
        self._emit(command, INVENTORY_UPDATED_V1, build_inventory_updated_payload(
            command, inventory=self._state.inventory,
        ))

        payment = self._assets[SettlementAssetKind.PAYMENT]
        if not payment.transfer(custody, distributor, payment_due):
            logger.warning(
                f"Payment of {payment_due} to '{distributor}' failed after "
                f"{delivery.quantity} units were credited; inventory now "
                f"{self._state.inventory}"
            )
            raise DistributorPaymentFailed(RejectionReason(
                code=ReasonCode.DISTRIBUTOR_PAYMENT_FAILED,
                message=f"Payment of {payment_due} to '{distributor}' was rejected.",
                policy_name="distributor_payment",
            ))
        self._emit(command, PAYMENT_MADE_V1, build_payment_made_payload(
            command, recipient=distributor, amount=payment_due,
        ))

        rating = self._state.increment_rating(distributor)
        self._emit(command, ORDER_RECEIVED_V1, build_order_received_payload(
            command, quantity=delivery.quantity, payment=payment_due,
        ))
        self._emit(command, CREDIT_RATING_UPDATED_V1, build_credit_rating_updated_payload(
            command, distributor=distributor, rating=rating,
        ))
        logger.info(
            f"Delivery of {delivery.quantity} from '{distributor}' accepted; "
            f"paid {payment_due}, rating {rating}"
        )
        return _Handled(True)

    # ══════════════════════════════════════════════════════════
    # ADMINISTRATION
    # ══════════════════════════════════════════════════════════

    def _update_prices(self, command: Command) -> _Handled:
        self._enforce(privileged_caller_policy(command, self._access))

        self._state.retail_price = command.payload["retail_price"]
        self._state.wholesale_price = command.payload["wholesale_price"]

        self._emit(command, PRICES_UPDATED_V1, build_prices_updated_payload(
            command,
            retail_price=self._state.retail_price,
            wholesale_price=self._state.wholesale_price,
        ))
        logger.info(
            f"Prices updated by '{command.actor_id}': retail "
            f"{self._state.retail_price}, wholesale {self._state.wholesale_price}"
        )
        return _Handled(None)

    def _withdraw(self, command: Command) -> _Handled:
        self._enforce(privileged_caller_policy(command, self._access))

        kind = command.payload["asset"]
        amount = command.payload["amount"]
        recipient = command.actor_id

        if not self._assets[kind].transfer(self._config.custody_account, recipient, amount):
            raise WithdrawalFailed(RejectionReason(
                code=ReasonCode.WITHDRAWAL_FAILED,
                message=f"Withdrawal of {amount} {kind.value} to '{recipient}' was rejected.",
                policy_name="custody_withdrawal",
            ))

        self._emit(command, FUNDS_WITHDRAWN_V1, build_funds_withdrawn_payload(
            command, asset=kind, amount=amount, recipient=recipient,
        ))
        logger.info(f"Withdrew {amount} {kind.value} to '{recipient}'")
        return _Handled(None)

    # ══════════════════════════════════════════════════════════
    # HELPERS
    # ══════════════════════════════════════════════════════════

    @staticmethod
    def _enforce(reason: Optional[RejectionReason]) -> None:
        if reason is not None:
            raise error_for_reason(reason)

    def _emit(self, command: Command, event_type: str, payload: dict) -> Notification:
        notification = self._publisher.publish(
            event_type=event_type,
            source_engine=SOURCE_ENGINE,
            actor_id=command.actor_id,
            correlation_id=command.correlation_id,
            causation_id=command.command_id,
            payload=payload,
        )
        self._emitted.append(notification)
        return notification

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    @property
    def inventory(self) -> int:
        return self._state.inventory

    @property
    def retail_price(self) -> int:
        return self._state.retail_price

    @property
    def wholesale_price(self) -> int:
        return self._state.wholesale_price

    @property
    def distributor(self) -> str:
        return self._state.distributor

    def rating_of(self, identity: str) -> int:
        return self._state.rating_of(identity)

    def custody_balance(self, asset: SettlementAssetKind) -> int:
        return self._assets[asset].balance_of(self._config.custody_account)

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def state(self) -> dict:
        return self._state.snapshot()

    @property
    def publisher(self) -> EventPublisher:
        return self._publisher

    @property
    def outcomes(self) -> tuple[CommandOutcome, ...]:
        return tuple(self._outcomes)
