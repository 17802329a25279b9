"""
Shop Ledger Engine — Test Suite
=================================
Tests verify:
- Request creation and structural validation
- Event type registration and payload building
- Policy decisions
- Configuration
- Service orchestration (command → transfers → state → notifications)
- Failure paths and the documented partial-failure asymmetries
- Reorder backlog subscription
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from engines.shop_ledger.config import LedgerConfig, ReceivePolicy
from engines.shop_ledger.errors import (
    ArithmeticOverflow,
    DistributorPaymentFailed,
    InsufficientInventory,
    InvalidDelivery,
    InvalidQuantity,
    PaymentFailed,
    RewardTransferFailed,
    Unauthorized,
    WithdrawalFailed,
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
)
from engines.shop_ledger.services import ShopLedgerService
from shopcore.access import OwnerAccessControl
from shopcore.events import EventPublisher, EventTypeRegistry
from shopcore.settlement import InMemorySettlementAsset, SettlementAssetKind
from shopcore.time import FixedClock

NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
CUSTODY = "shop-ledger"
DISTRIBUTOR = "acme-distribution"
CUSTOMER = "customer-001"
STRANGER = "someone-else"


# ══════════════════════════════════════════════════════════════
# TEST HELPERS
# ══════════════════════════════════════════════════════════════

class Harness:
    """Ledger wired to in-memory assets, owner access and a fixed clock."""

    def __init__(
        self,
        *,
        inventory=60,
        retail=10,
        wholesale=5,
        threshold=50,
        reorder=500,
        policy=ReceivePolicy.STRICT,
        owner=DISTRIBUTOR,
        customer_funds=10_000,
        custody_payment=0,
        custody_reward=1_000,
        max_amount=None,
        history_limit=None,
        persist_event=None,
    ):
        self.payment = InMemorySettlementAsset(
            "PAY", {CUSTOMER: customer_funds, CUSTODY: custody_payment},
        )
        self.payment.approve(CUSTOMER, CUSTODY, customer_funds)
        self.reward = InMemorySettlementAsset("RWD", {CUSTODY: custody_reward})
        self.clock = FixedClock(NOW)
        config_args = dict(
            reorder_threshold=threshold,
            reorder_quantity=reorder,
            initial_inventory=inventory,
            receive_policy=policy,
            custody_account=CUSTODY,
        )
        if max_amount is not None:
            config_args["max_amount"] = max_amount
        if history_limit is not None:
            config_args["history_limit"] = history_limit
        config = LedgerConfig(**config_args)
        publisher = None
        if persist_event is not None:
            publisher = EventPublisher(
                event_type_registry=EventTypeRegistry(),
                persist_event=persist_event,
                clock=self.clock,
                history_limit=config.history_limit,
            )
        self.ledger = ShopLedgerService(
            distributor=DISTRIBUTOR,
            retail_price=retail,
            wholesale_price=wholesale,
            payment_asset=self.payment,
            reward_asset=self.reward,
            access_control=OwnerAccessControl(owner),
            config=config,
            clock=self.clock,
            publisher=publisher,
        )

    def events(self, event_type):
        return self.ledger.publisher.published_of_type(event_type)

    def balances(self):
        return {
            "custody_payment": self.payment.balance_of(CUSTODY),
            "custody_reward": self.reward.balance_of(CUSTODY),
            "customer_payment": self.payment.balance_of(CUSTOMER),
            "customer_reward": self.reward.balance_of(CUSTOMER),
            "distributor_payment": self.payment.balance_of(DISTRIBUTOR),
        }


def valid_dates(count, offset=timedelta(days=14)):
    return [NOW + offset] * count


def make_command_args(actor_id=CUSTOMER):
    return dict(
        actor_id=actor_id,
        command_id=uuid.uuid4(),
        correlation_id=uuid.uuid4(),
        issued_at=NOW,
    )


# ══════════════════════════════════════════════════════════════
# REQUEST COMMANDS
# ══════════════════════════════════════════════════════════════

class TestShopLedgerCommands:

    def test_purchase_request(self):
        from engines.shop_ledger.commands import PurchaseRequest
        cmd = PurchaseRequest(quantity=3).to_command(**make_command_args())
        assert cmd.command_type == "shop_ledger.purchase.execute.request"
        assert cmd.source_engine == "shop_ledger"
        assert cmd.actor_id == CUSTOMER
        assert cmd.payload == {"quantity": 3}

    def test_purchase_request_allows_zero_for_policy_to_judge(self):
        from engines.shop_ledger.commands import PurchaseRequest
        cmd = PurchaseRequest(quantity=0).to_command(**make_command_args())
        assert cmd.payload["quantity"] == 0

    def test_purchase_quantity_must_be_integer(self):
        from engines.shop_ledger.commands import PurchaseRequest
        with pytest.raises(TypeError, match="integer"):
            PurchaseRequest(quantity="3")
        with pytest.raises(TypeError):
            PurchaseRequest(quantity=True)

    def test_receive_order_request_freezes_dates(self):
        from engines.shop_ledger.commands import ReceiveOrderRequest
        req = ReceiveOrderRequest(quantity=2, expiration_dates=valid_dates(2))
        assert isinstance(req.expiration_dates, tuple)
        cmd = req.to_command(**make_command_args(DISTRIBUTOR))
        assert cmd.command_type == "shop_ledger.order.receive.request"
        assert len(cmd.payload["expiration_dates"]) == 2

    def test_receive_order_rejects_non_datetime(self):
        from engines.shop_ledger.commands import ReceiveOrderRequest
        with pytest.raises(TypeError, match="datetime"):
            ReceiveOrderRequest(quantity=1, expiration_dates=["2026-03-10"])
        with pytest.raises(TypeError):
            ReceiveOrderRequest(quantity=1, expiration_dates="2026-03-10")

    def test_update_prices_request(self):
        from engines.shop_ledger.commands import UpdatePricesRequest
        cmd = UpdatePricesRequest(retail_price=0, wholesale_price=7).to_command(
            **make_command_args(DISTRIBUTOR)
        )
        assert cmd.command_type == "shop_ledger.prices.update.request"
        assert cmd.payload == {"retail_price": 0, "wholesale_price": 7}

    def test_negative_price_rejected(self):
        from engines.shop_ledger.commands import UpdatePricesRequest
        with pytest.raises(ValueError, match="retail_price"):
            UpdatePricesRequest(retail_price=-1, wholesale_price=5)

    def test_withdraw_request_coerces_asset_name(self):
        from engines.shop_ledger.commands import WithdrawRequest
        req = WithdrawRequest(asset="payment", amount=10)
        assert req.asset is SettlementAssetKind.PAYMENT

    def test_withdraw_request_invalid_asset(self):
        from engines.shop_ledger.commands import WithdrawRequest
        with pytest.raises(ValueError, match="not valid"):
            WithdrawRequest(asset="gold", amount=10)

    def test_withdraw_negative_amount(self):
        from engines.shop_ledger.commands import WithdrawRequest
        with pytest.raises(ValueError, match="non-negative"):
            WithdrawRequest(asset=SettlementAssetKind.REWARD, amount=-5)


# ══════════════════════════════════════════════════════════════
# EVENTS
# ══════════════════════════════════════════════════════════════

class TestShopLedgerEvents:

    def test_event_type_registration(self):
        from engines.shop_ledger.events import (
            SHOP_LEDGER_EVENT_TYPES,
            register_shop_ledger_event_types,
        )
        from shopcore.events import EventTypeRegistry
        registry = EventTypeRegistry()
        register_shop_ledger_event_types(registry)
        assert registry.all_types() == frozenset(SHOP_LEDGER_EVENT_TYPES)
        assert registry.is_registered(REORDER_REQUESTED_V1)

    def test_payload_carries_command_identity(self):
        from engines.shop_ledger.commands import PurchaseRequest
        from engines.shop_ledger.events import build_purchase_completed_payload
        cmd = PurchaseRequest(quantity=4).to_command(**make_command_args())
        payload = build_purchase_completed_payload(
            cmd, buyer=CUSTOMER, quantity=4, total_price=40,
        )
        assert payload["actor_id"] == CUSTOMER
        assert payload["command_id"] == str(cmd.command_id)
        assert payload["correlation_id"] == str(cmd.correlation_id)
        assert payload["total_price"] == 40

    def test_declined_payload_serializes_reason(self):
        from engines.shop_ledger.commands import ReceiveOrderRequest
        from engines.shop_ledger.events import build_order_declined_payload
        from shopcore.commands import RejectionReason
        cmd = ReceiveOrderRequest(quantity=1, expiration_dates=valid_dates(1)).to_command(
            **make_command_args(DISTRIBUTOR)
        )
        reason = RejectionReason(code="INVALID_DELIVERY", message="bad", policy_name="p")
        payload = build_order_declined_payload(cmd, quantity=1, reason=reason)
        assert payload["reason"] == {
            "code": "INVALID_DELIVERY", "message": "bad", "policy_name": "p",
        }


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

class TestShopLedgerPolicies:

    def _purchase(self, quantity):
        from engines.shop_ledger.commands import PurchaseRequest
        return PurchaseRequest(quantity=quantity).to_command(**make_command_args())

    def _delivery(self, quantity, dates, actor_id=DISTRIBUTOR):
        from engines.shop_ledger.commands import ReceiveOrderRequest
        return ReceiveOrderRequest(quantity=quantity, expiration_dates=dates).to_command(
            **make_command_args(actor_id)
        )

    def test_positive_quantity(self):
        from engines.shop_ledger.policies import positive_quantity_policy
        assert positive_quantity_policy(self._purchase(1)) is None
        reason = positive_quantity_policy(self._purchase(0))
        assert reason.code == "INVALID_QUANTITY"
        assert reason.policy_name == "positive_quantity_policy"

    def test_sufficient_inventory(self):
        from engines.shop_ledger.policies import sufficient_inventory_policy
        assert sufficient_inventory_policy(self._purchase(10), inventory=10) is None
        reason = sufficient_inventory_policy(self._purchase(11), inventory=10)
        assert reason.code == "INSUFFICIENT_INVENTORY"

    def test_amount_overflow(self):
        from engines.shop_ledger.policies import amount_overflow_policy
        assert amount_overflow_policy(100, 100, label="Total") is None
        reason = amount_overflow_policy(101, 100, label="Total")
        assert reason.code == "ARITHMETIC_OVERFLOW"

    def test_privileged_caller(self):
        from engines.shop_ledger.policies import privileged_caller_policy
        access = OwnerAccessControl(DISTRIBUTOR)
        assert privileged_caller_policy(self._delivery(1, valid_dates(1)), access) is None
        reason = privileged_caller_policy(
            self._delivery(1, valid_dates(1), actor_id=STRANGER), access,
        )
        assert reason.code == "UNAUTHORIZED"

    def test_registered_distributor(self):
        from engines.shop_ledger.policies import registered_distributor_policy
        cmd = self._delivery(1, valid_dates(1), actor_id=STRANGER)
        assert registered_distributor_policy(cmd, DISTRIBUTOR).code == "UNAUTHORIZED"

    def test_delivery_quantity(self):
        from engines.shop_ledger.policies import delivery_quantity_policy
        assert delivery_quantity_policy(self._delivery(3, valid_dates(3)), 3) is None
        assert delivery_quantity_policy(self._delivery(2, valid_dates(2)), 3).code == "INVALID_DELIVERY"

    def test_expiration_count(self):
        from engines.shop_ledger.policies import expiration_count_policy
        assert expiration_count_policy(self._delivery(2, valid_dates(2))) is None
        reason = expiration_count_policy(self._delivery(2, valid_dates(1)))
        assert "Expected 2" in reason.message

    def test_expiration_window_bounds_are_inclusive(self):
        from engines.shop_ledger.policies import expiration_window_policy
        window = timedelta(weeks=4)
        dates = [NOW, NOW + window]
        assert expiration_window_policy(self._delivery(2, dates), window) is None

    def test_expiration_window_rejects_past_and_far_future(self):
        from engines.shop_ledger.policies import expiration_window_policy
        window = timedelta(weeks=4)
        past = self._delivery(1, [NOW - timedelta(seconds=1)])
        future = self._delivery(1, [NOW + window + timedelta(seconds=1)])
        assert expiration_window_policy(past, window).code == "INVALID_DELIVERY"
        assert "#0" in expiration_window_policy(future, window).message

    def test_expiration_window_rejects_naive_dates(self):
        from engines.shop_ledger.policies import expiration_window_policy
        naive = self._delivery(1, [datetime(2026, 3, 10, 12, 0)])
        reason = expiration_window_policy(naive, timedelta(weeks=4))
        assert "timezone-aware" in reason.message


# ══════════════════════════════════════════════════════════════
# CONFIGURATION
# ══════════════════════════════════════════════════════════════

class TestLedgerConfig:

    def test_defaults(self):
        config = LedgerConfig()
        assert config.reorder_threshold == 50
        assert config.reorder_quantity == 500
        assert config.initial_inventory == 0
        assert config.expiration_window == timedelta(weeks=4)
        assert config.is_strict
        assert config.max_amount == 2**256 - 1

    def test_reorder_quantity_must_be_positive(self):
        with pytest.raises(ValueError, match="reorder_quantity"):
            LedgerConfig(reorder_quantity=0)

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError, match="reorder_threshold"):
            LedgerConfig(reorder_threshold=-1)
        with pytest.raises(ValueError, match="initial_inventory"):
            LedgerConfig(initial_inventory=True)

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError, match="expiration_window"):
            LedgerConfig(expiration_window=timedelta(0))

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValueError, match="history_limit"):
            LedgerConfig(history_limit=0)
        with pytest.raises(ValueError, match="history_limit"):
            LedgerConfig(history_limit=-5)

    def test_from_mapping(self):
        config = LedgerConfig.from_mapping({
            "reorder_threshold": 10,
            "reorder_quantity": 100,
            "receive_policy": "lenient",
            "expiration_window": 3600,
        })
        assert config.receive_policy is ReceivePolicy.LENIENT
        assert config.expiration_window == timedelta(hours=1)
        assert not config.is_strict

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown"):
            LedgerConfig.from_mapping({"colour": "blue"})

    def test_from_mapping_rejects_unknown_policy(self):
        with pytest.raises(ValueError, match="receive_policy"):
            LedgerConfig.from_mapping({"receive_policy": "relaxed"})


# ══════════════════════════════════════════════════════════════
# SERVICE — CONSTRUCTION & QUERIES
# ══════════════════════════════════════════════════════════════

class TestShopLedgerConstruction:

    def test_initial_state(self):
        h = Harness(inventory=60, retail=10, wholesale=5)
        assert h.ledger.inventory == 60
        assert h.ledger.retail_price == 10
        assert h.ledger.wholesale_price == 5
        assert h.ledger.distributor == DISTRIBUTOR
        assert h.ledger.rating_of(DISTRIBUTOR) == 0
        assert h.ledger.state == {
            "inventory": 60,
            "retail_price": 10,
            "wholesale_price": 5,
            "distributor": DISTRIBUTOR,
            "distributor_rating": {},
        }

    def test_custody_balance(self):
        h = Harness(custody_payment=70, custody_reward=30)
        assert h.ledger.custody_balance(SettlementAssetKind.PAYMENT) == 70
        assert h.ledger.custody_balance(SettlementAssetKind.REWARD) == 30

    def test_empty_distributor_rejected(self):
        with pytest.raises(ValueError, match="distributor"):
            ShopLedgerService(
                distributor="",
                retail_price=1,
                wholesale_price=1,
                payment_asset=InMemorySettlementAsset("PAY"),
                reward_asset=InMemorySettlementAsset("RWD"),
                access_control=OwnerAccessControl("owner"),
            )

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError, match="wholesale_price"):
            ShopLedgerService(
                distributor=DISTRIBUTOR,
                retail_price=1,
                wholesale_price=-1,
                payment_asset=InMemorySettlementAsset("PAY"),
                reward_asset=InMemorySettlementAsset("RWD"),
                access_control=OwnerAccessControl("owner"),
            )

    def test_unsupported_command_type(self):
        from shopcore.commands import Command
        h = Harness()
        cmd = Command(
            command_type="shop_ledger.stock.count.request",
            payload={},
            source_engine="shop_ledger",
            **make_command_args(),
        )
        with pytest.raises(ValueError, match="Unsupported"):
            h.ledger.execute(cmd)


# ══════════════════════════════════════════════════════════════
# SERVICE — PURCHASE FLOW
# ══════════════════════════════════════════════════════════════

class TestPurchase:

    def test_reorder_scenario(self):
        h = Harness(inventory=60, threshold=50, reorder=500, retail=10)
        custody_before = h.payment.balance_of(CUSTODY)

        total = h.ledger.purchase(15, caller=CUSTOMER)

        assert total == 150
        assert h.ledger.inventory == 45
        assert h.payment.balance_of(CUSTODY) == custody_before + 150
        reorders = h.events(REORDER_REQUESTED_V1)
        assert len(reorders) == 1
        assert reorders[0].payload["quantity"] == 500
        assert reorders[0].payload["distributor"] == DISTRIBUTOR

    def test_reward_issued_per_unit(self):
        h = Harness()
        h.ledger.purchase(4, caller=CUSTOMER)
        assert h.reward.balance_of(CUSTOMER) == 4
        assert h.reward.balance_of(CUSTODY) == 996
        assert h.payment.balance_of(CUSTOMER) == 10_000 - 40

    def test_notifications_in_order(self):
        h = Harness(inventory=60)
        result_types = [n.event_type for n in h.ledger.publisher.published]
        assert result_types == []

        h.ledger.purchase(15, caller=CUSTOMER)

        assert [n.event_type for n in h.ledger.publisher.published] == [
            PURCHASE_COMPLETED_V1,
            REWARD_ISSUED_V1,
            INVENTORY_UPDATED_V1,
            REORDER_REQUESTED_V1,
        ]
        completed = h.events(PURCHASE_COMPLETED_V1)[0]
        assert completed.payload["buyer"] == CUSTOMER
        assert completed.payload["quantity"] == 15
        assert completed.payload["total_price"] == 150
        assert completed.source_engine == "shop_ledger"
        assert completed.created_at == NOW

    def test_notifications_share_correlation(self):
        h = Harness()
        h.ledger.purchase(15, caller=CUSTOMER)
        published = h.ledger.publisher.published
        assert len({n.correlation_id for n in published}) == 1
        assert len({n.causation_id for n in published}) == 1

    def test_no_reorder_at_threshold(self):
        h = Harness(inventory=60, threshold=50)
        h.ledger.purchase(10, caller=CUSTOMER)
        assert h.ledger.inventory == 50
        assert h.events(REORDER_REQUESTED_V1) == []

    def test_each_below_threshold_purchase_resignals(self):
        h = Harness(inventory=60, threshold=50)
        h.ledger.purchase(15, caller=CUSTOMER)
        h.ledger.purchase(1, caller=CUSTOMER)
        assert len(h.events(REORDER_REQUESTED_V1)) == 2

    def test_buy_entire_inventory(self):
        h = Harness(inventory=60)
        h.ledger.purchase(60, caller=CUSTOMER)
        assert h.ledger.inventory == 0

    def test_zero_quantity_invalid(self):
        h = Harness()
        state_before, balances_before = h.ledger.state, h.balances()
        with pytest.raises(InvalidQuantity) as exc:
            h.ledger.purchase(0, caller=CUSTOMER)
        assert exc.value.reason.code == "INVALID_QUANTITY"
        assert h.ledger.state == state_before
        assert h.balances() == balances_before
        assert h.ledger.publisher.published == ()

    def test_negative_quantity_invalid(self):
        h = Harness()
        with pytest.raises(InvalidQuantity):
            h.ledger.purchase(-3, caller=CUSTOMER)

    def test_quantity_above_inventory(self):
        h = Harness(inventory=60)
        state_before, balances_before = h.ledger.state, h.balances()
        with pytest.raises(InsufficientInventory):
            h.ledger.purchase(61, caller=CUSTOMER)
        assert h.ledger.state == state_before
        assert h.balances() == balances_before

    def test_zero_quantity_checked_before_inventory(self):
        h = Harness(inventory=0)
        with pytest.raises(InvalidQuantity):
            h.ledger.purchase(0, caller=CUSTOMER)

    def test_payment_rejected_without_allowance(self):
        h = Harness()
        h.payment.approve(CUSTOMER, CUSTODY, 0)
        state_before, balances_before = h.ledger.state, h.balances()
        with pytest.raises(PaymentFailed):
            h.ledger.purchase(5, caller=CUSTOMER)
        assert h.ledger.state == state_before
        assert h.balances() == balances_before

    def test_payment_rejected_without_funds(self):
        h = Harness(customer_funds=30)
        with pytest.raises(PaymentFailed):
            h.ledger.purchase(5, caller=CUSTOMER)
        assert h.ledger.inventory == 60
        assert h.reward.balance_of(CUSTOMER) == 0

    def test_reward_failure_keeps_payment_and_decrement(self):
        h = Harness(inventory=60)
        h.reward.reject_next_transfers()

        with pytest.raises(RewardTransferFailed):
            h.ledger.purchase(5, caller=CUSTOMER)

        assert h.ledger.inventory == 55
        assert h.payment.balance_of(CUSTODY) == 50
        assert h.reward.balance_of(CUSTOMER) == 0
        assert h.events(PURCHASE_COMPLETED_V1) == []

    def test_total_price_overflow(self):
        h = Harness(retail=2**255, inventory=60)
        with pytest.raises(ArithmeticOverflow):
            h.ledger.purchase(2, caller=CUSTOMER)
        assert h.ledger.inventory == 60

    def test_configured_max_amount(self):
        h = Harness(retail=100, max_amount=1_000)
        with pytest.raises(ArithmeticOverflow):
            h.ledger.purchase(11, caller=CUSTOMER)
        assert h.ledger.purchase(10, caller=CUSTOMER) == 1_000

    def test_free_product(self):
        h = Harness(retail=0)
        assert h.ledger.purchase(3, caller=CUSTOMER) == 0
        assert h.reward.balance_of(CUSTOMER) == 3

    def test_repeated_failures_never_mutate(self):
        h = Harness(inventory=60)
        state_before, balances_before = h.ledger.state, h.balances()
        for _ in range(3):
            with pytest.raises(InsufficientInventory):
                h.ledger.purchase(100, caller=CUSTOMER)
        assert h.ledger.state == state_before
        assert h.balances() == balances_before

    def test_outcomes_recorded(self):
        h = Harness()
        h.ledger.purchase(1, caller=CUSTOMER)
        with pytest.raises(InvalidQuantity):
            h.ledger.purchase(0, caller=CUSTOMER)
        accepted, rejected = h.ledger.outcomes
        assert accepted.is_accepted
        assert rejected.is_rejected
        assert rejected.reason.code == "INVALID_QUANTITY"

    def test_execute_returns_notifications(self):
        from engines.shop_ledger.commands import PurchaseRequest
        h = Harness(inventory=100)
        cmd = PurchaseRequest(quantity=2).to_command(**make_command_args())
        result = h.ledger.execute(cmd)
        assert result.value == 20
        assert result.outcome.is_accepted
        assert [n.event_type for n in result.notifications] == [
            PURCHASE_COMPLETED_V1, REWARD_ISSUED_V1, INVENTORY_UPDATED_V1,
        ]


# ══════════════════════════════════════════════════════════════
# SERVICE — RECEIVE-ORDER FLOW
# ══════════════════════════════════════════════════════════════

class TestReceiveOrder:

    def test_delivery_scenario(self):
        h = Harness(inventory=60, wholesale=5, custody_payment=2_500)

        accepted = h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)

        assert accepted is True
        assert h.ledger.inventory == 560
        assert h.payment.balance_of(DISTRIBUTOR) == 2_500
        assert h.payment.balance_of(CUSTODY) == 0
        assert h.ledger.rating_of(DISTRIBUTOR) == 1

    def test_delivery_notifications(self):
        h = Harness(inventory=60, wholesale=5, custody_payment=2_500)
        h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)

        assert [n.event_type for n in h.ledger.publisher.published] == [
            INVENTORY_UPDATED_V1,
            PAYMENT_MADE_V1,
            ORDER_RECEIVED_V1,
            CREDIT_RATING_UPDATED_V1,
        ]
        received = h.events(ORDER_RECEIVED_V1)[0].payload
        assert received["quantity"] == 500
        assert received["payment"] == 2_500
        rating = h.events(CREDIT_RATING_UPDATED_V1)[0].payload
        assert rating["distributor"] == DISTRIBUTOR
        assert rating["rating"] == 1

    def test_rating_grows_by_one_per_delivery(self):
        h = Harness(wholesale=1, custody_payment=1_000)
        h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        assert h.ledger.rating_of(DISTRIBUTOR) == 2
        assert h.ledger.state["distributor_rating"] == {DISTRIBUTOR: 2}

    def test_non_distributor_unauthorized(self):
        h = Harness(custody_payment=2_500)
        state_before, balances_before = h.ledger.state, h.balances()
        with pytest.raises(Unauthorized):
            h.ledger.receive_order(500, valid_dates(500), caller=STRANGER)
        assert h.ledger.state == state_before
        assert h.balances() == balances_before

    def test_distributor_without_privilege_unauthorized(self):
        h = Harness(owner="shop-owner", custody_payment=2_500)
        with pytest.raises(Unauthorized) as exc:
            h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        assert exc.value.reason.policy_name == "privileged_caller_policy"

    def test_privileged_non_distributor_unauthorized(self):
        h = Harness(owner="shop-owner", custody_payment=2_500)
        with pytest.raises(Unauthorized) as exc:
            h.ledger.receive_order(500, valid_dates(500), caller="shop-owner")
        assert exc.value.reason.policy_name == "registered_distributor_policy"

    def test_wrong_quantity_strict(self):
        h = Harness(inventory=60, custody_payment=2_500)
        with pytest.raises(InvalidDelivery) as exc:
            h.ledger.receive_order(499, valid_dates(499), caller=DISTRIBUTOR)
        assert exc.value.reason.policy_name == "delivery_quantity_policy"
        assert h.ledger.inventory == 60
        assert h.payment.balance_of(DISTRIBUTOR) == 0
        assert h.ledger.publisher.published == ()

    def test_date_count_mismatch_strict(self):
        h = Harness(custody_payment=2_500)
        with pytest.raises(InvalidDelivery):
            h.ledger.receive_order(500, valid_dates(499), caller=DISTRIBUTOR)
        assert h.ledger.inventory == 60

    def test_expired_date_strict(self):
        h = Harness(custody_payment=2_500)
        dates = valid_dates(499) + [NOW - timedelta(days=1)]
        with pytest.raises(InvalidDelivery):
            h.ledger.receive_order(500, dates, caller=DISTRIBUTOR)
        assert h.ledger.inventory == 60
        assert h.ledger.rating_of(DISTRIBUTOR) == 0

    def test_date_beyond_window_strict(self):
        h = Harness(custody_payment=2_500)
        dates = valid_dates(499) + [NOW + timedelta(weeks=4, seconds=1)]
        with pytest.raises(InvalidDelivery):
            h.ledger.receive_order(500, dates, caller=DISTRIBUTOR)

    def test_window_follows_clock(self):
        h = Harness(custody_payment=2_500)
        dates = valid_dates(500, offset=timedelta(days=30))
        with pytest.raises(InvalidDelivery):
            h.ledger.receive_order(500, dates, caller=DISTRIBUTOR)
        h.clock.advance(days=3)
        assert h.ledger.receive_order(500, dates, caller=DISTRIBUTOR) is True

    def test_lenient_declines_without_mutation(self):
        h = Harness(inventory=60, policy=ReceivePolicy.LENIENT, custody_payment=2_500)
        balances_before = h.balances()
        dates = valid_dates(499) + [NOW + timedelta(weeks=5)]

        accepted = h.ledger.receive_order(500, dates, caller=DISTRIBUTOR)

        assert accepted is False
        assert h.ledger.inventory == 60
        assert h.ledger.rating_of(DISTRIBUTOR) == 0
        assert h.balances() == balances_before
        declined = h.events(ORDER_DECLINED_V1)
        assert len(declined) == 1
        assert declined[0].payload["reason"]["code"] == "INVALID_DELIVERY"
        assert h.events(ORDER_RECEIVED_V1) == []
        assert h.ledger.outcomes[-1].is_rejected

    def test_lenient_wrong_quantity_declined(self):
        h = Harness(policy=ReceivePolicy.LENIENT, custody_payment=2_500)
        assert h.ledger.receive_order(10, valid_dates(10), caller=DISTRIBUTOR) is False
        assert h.ledger.inventory == 60

    def test_lenient_still_requires_authorization(self):
        h = Harness(policy=ReceivePolicy.LENIENT)
        with pytest.raises(Unauthorized):
            h.ledger.receive_order(500, valid_dates(500), caller=STRANGER)

    def test_lenient_valid_delivery_accepted(self):
        h = Harness(policy=ReceivePolicy.LENIENT, custody_payment=2_500)
        assert h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR) is True
        assert h.ledger.inventory == 560

    def test_distributor_payment_failure_keeps_credit(self):
        h = Harness(inventory=60, wholesale=5, custody_payment=0)

        with pytest.raises(DistributorPaymentFailed):
            h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)

        assert h.ledger.inventory == 560
        assert h.ledger.rating_of(DISTRIBUTOR) == 0
        assert h.payment.balance_of(DISTRIBUTOR) == 0
        assert len(h.events(INVENTORY_UPDATED_V1)) == 1
        assert h.events(ORDER_RECEIVED_V1) == []

    def test_payment_overflow(self):
        h = Harness(wholesale=2**250)
        with pytest.raises(ArithmeticOverflow):
            h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        assert h.ledger.inventory == 60

    def test_restock_after_reorder(self):
        h = Harness(inventory=60, retail=10, wholesale=5)
        h.ledger.purchase(15, caller=CUSTOMER)
        h.payment.mint(CUSTODY, 2_500)
        assert h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        assert h.ledger.inventory == 545
        assert h.payment.balance_of(CUSTODY) == 150


# ══════════════════════════════════════════════════════════════
# SERVICE — ADMINISTRATION
# ══════════════════════════════════════════════════════════════

class TestAdministration:

    def test_update_prices(self):
        h = Harness(retail=10, wholesale=5)
        h.ledger.update_prices(12, 6, caller=DISTRIBUTOR)
        assert h.ledger.retail_price == 12
        assert h.ledger.wholesale_price == 6
        payload = h.events(PRICES_UPDATED_V1)[0].payload
        assert payload["retail_price"] == 12
        assert payload["wholesale_price"] == 6

    def test_prices_apply_to_next_purchase(self):
        h = Harness(retail=10)
        h.ledger.update_prices(3, 1, caller=DISTRIBUTOR)
        assert h.ledger.purchase(4, caller=CUSTOMER) == 12

    def test_update_prices_to_zero(self):
        h = Harness()
        h.ledger.update_prices(0, 0, caller=DISTRIBUTOR)
        assert h.ledger.retail_price == 0

    def test_update_prices_unauthorized(self):
        h = Harness(retail=10, wholesale=5)
        with pytest.raises(Unauthorized):
            h.ledger.update_prices(1, 1, caller=CUSTOMER)
        assert h.ledger.retail_price == 10
        assert h.events(PRICES_UPDATED_V1) == []

    def test_withdraw_payment(self):
        h = Harness()
        h.ledger.purchase(15, caller=CUSTOMER)
        h.ledger.withdraw(SettlementAssetKind.PAYMENT, 100, caller=DISTRIBUTOR)
        assert h.payment.balance_of(DISTRIBUTOR) == 100
        assert h.ledger.custody_balance(SettlementAssetKind.PAYMENT) == 50
        payload = h.events(FUNDS_WITHDRAWN_V1)[0].payload
        assert payload["asset"] == "PAYMENT"
        assert payload["recipient"] == DISTRIBUTOR

    def test_withdraw_reward(self):
        h = Harness(custody_reward=40)
        h.ledger.withdraw(SettlementAssetKind.REWARD, 40, caller=DISTRIBUTOR)
        assert h.reward.balance_of(DISTRIBUTOR) == 40
        assert h.ledger.custody_balance(SettlementAssetKind.REWARD) == 0

    def test_withdraw_beyond_custody(self):
        h = Harness(custody_payment=10)
        with pytest.raises(WithdrawalFailed):
            h.ledger.withdraw(SettlementAssetKind.PAYMENT, 11, caller=DISTRIBUTOR)
        assert h.ledger.custody_balance(SettlementAssetKind.PAYMENT) == 10

    def test_withdraw_unauthorized(self):
        h = Harness(custody_payment=10)
        with pytest.raises(Unauthorized):
            h.ledger.withdraw(SettlementAssetKind.PAYMENT, 5, caller=CUSTOMER)
        assert h.payment.balance_of(CUSTOMER) == 10_000


# ══════════════════════════════════════════════════════════════
# SUBSCRIPTIONS
# ══════════════════════════════════════════════════════════════

class TestReorderBacklog:

    def test_tracks_open_and_fulfilled_signals(self):
        from engines.shop_ledger.subscriptions import ReorderBacklog
        h = Harness(inventory=60, custody_payment=2_500)
        backlog = ReorderBacklog()
        backlog.register(h.ledger.publisher.subscriber_registry)

        h.ledger.purchase(15, caller=CUSTOMER)
        h.ledger.purchase(1, caller=CUSTOMER)
        assert backlog.open_count == 2
        assert backlog.open_requests[0]["quantity"] == 500
        assert backlog.open_requests[0]["distributor"] == DISTRIBUTOR

        h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR)
        assert backlog.open_count == 0
        assert backlog.fulfilled_count == 2
        assert backlog.received_units == 500

    def test_failing_observer_does_not_break_purchase(self):
        h = Harness()

        def broken_handler(event):
            raise RuntimeError("observer down")

        h.ledger.publisher.subscriber_registry.register_subscriber(
            PURCHASE_COMPLETED_V1, broken_handler, "monitoring",
        )
        assert h.ledger.purchase(2, caller=CUSTOMER) == 20
        assert h.ledger.inventory == 58


# ══════════════════════════════════════════════════════════════
# JOURNAL FAILURES
# ══════════════════════════════════════════════════════════════

class TestJournalFailureIsolation:

    def test_raising_journal_does_not_interrupt_purchase(self):
        def locked_journal(notification):
            raise RuntimeError("database is locked")

        h = Harness(inventory=60, threshold=50, persist_event=locked_journal)

        assert h.ledger.purchase(15, caller=CUSTOMER) == 150

        assert h.ledger.inventory == 45
        assert h.payment.balance_of(CUSTODY) == 150
        assert len(h.events(REORDER_REQUESTED_V1)) == 1
        assert h.ledger.outcomes[-1].is_accepted
        published = h.ledger.publisher.published
        assert len(published) == 4
        assert h.ledger.publisher.unjournaled == tuple(n.event_id for n in published)

    def test_refusing_journal_marks_notifications_unjournaled(self):
        h = Harness(persist_event=lambda notification: {"accepted": False})

        h.ledger.purchase(15, caller=CUSTOMER)

        assert h.ledger.outcomes[-1].is_accepted
        assert len(h.events(REORDER_REQUESTED_V1)) == 1
        assert len(h.ledger.publisher.unjournaled) == 4

    def test_accepting_journal_leaves_nothing_unjournaled(self):
        journaled = []

        def journal(notification):
            journaled.append(notification.event_id)
            return {"accepted": True}

        h = Harness(persist_event=journal)
        h.ledger.purchase(15, caller=CUSTOMER)

        assert h.ledger.publisher.unjournaled == ()
        assert journaled == [n.event_id for n in h.ledger.publisher.published]

    def test_failing_delivery_journal_still_pays_distributor(self):
        def locked_journal(notification):
            raise RuntimeError("database is locked")

        h = Harness(custody_payment=2_500, persist_event=locked_journal)

        assert h.ledger.receive_order(500, valid_dates(500), caller=DISTRIBUTOR) is True
        assert h.payment.balance_of(DISTRIBUTOR) == 2_500
        assert h.ledger.rating_of(DISTRIBUTOR) == 1


# ══════════════════════════════════════════════════════════════
# RETAINED HISTORY
# ══════════════════════════════════════════════════════════════

class TestRetainedHistory:

    def test_history_stays_within_limit(self):
        h = Harness(inventory=100, history_limit=4)

        for _ in range(5):
            h.ledger.purchase(1, caller=CUSTOMER)

        assert h.ledger.publisher.history_limit == 4
        assert len(h.ledger.publisher.published) == 4
        assert len(h.ledger.outcomes) == 4
        assert h.ledger.inventory == 95

    def test_oldest_entries_evicted_first(self):
        h = Harness(inventory=100, history_limit=3)

        h.ledger.purchase(1, caller=CUSTOMER)
        h.ledger.purchase(2, caller=CUSTOMER)

        assert [n.event_type for n in h.ledger.publisher.published] == [
            PURCHASE_COMPLETED_V1, REWARD_ISSUED_V1, INVENTORY_UPDATED_V1,
        ]
        assert h.events(PURCHASE_COMPLETED_V1)[0].payload["quantity"] == 2

    def test_execute_returns_own_notifications_past_limit(self):
        from engines.shop_ledger.commands import PurchaseRequest
        h = Harness(inventory=100, history_limit=2)
        h.ledger.purchase(1, caller=CUSTOMER)

        result = h.ledger.execute(
            PurchaseRequest(quantity=3).to_command(**make_command_args())
        )

        assert [n.event_type for n in result.notifications] == [
            PURCHASE_COMPLETED_V1, REWARD_ISSUED_V1, INVENTORY_UPDATED_V1,
        ]
        assert result.notifications[0].payload["quantity"] == 3

    def test_default_limit(self):
        h = Harness()
        assert h.ledger.config.history_limit == 1000
        assert h.ledger.publisher.history_limit == 1000
