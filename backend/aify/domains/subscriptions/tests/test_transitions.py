"""Tests for the pure billing transition function."""

from datetime import datetime, timezone

import pytest

from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.domains.subscriptions.transitions import apply_billing_event
from aify.domains.subscriptions.types import AccountState, BillingEvent, BillingEventKind

GRANT = 3
PERIOD_END = datetime(2025, 7, 15, tzinfo=timezone.utc)
LATER_PERIOD_END = datetime(2025, 8, 15, tzinfo=timezone.utc)

FREE = AccountState(tier=AccountTier.FREE, status=SubscriptionStatus.INACTIVE, balance=1)
ACTIVE_PRO = AccountState(
    tier=AccountTier.PROFESSIONAL,
    status=SubscriptionStatus.ACTIVE,
    balance=0,
    used_this_period=12,
    stripe_customer_id="cus_1",
    stripe_subscription_id="sub_1",
    period_end=PERIOD_END,
)


def _event(kind: BillingEventKind, **fields) -> BillingEvent:
    return BillingEvent(id="evt_1", type=f"test.{kind.value}", kind=kind, **fields)


class TestActivated:
    def test_free_to_active_tier(self):
        event = _event(
            BillingEventKind.ACTIVATED,
            tier=AccountTier.BASIC,
            customer_id="cus_1",
            subscription_id="sub_1",
            period_end=PERIOD_END,
        )

        state = apply_billing_event(FREE, event, GRANT)

        assert state.tier is AccountTier.BASIC
        assert state.status is SubscriptionStatus.ACTIVE
        assert state.stripe_subscription_id == "sub_1"
        assert state.period_end == PERIOD_END
        assert state.balance == FREE.balance

    def test_missing_tier_keeps_current(self):
        state = apply_billing_event(ACTIVE_PRO, _event(BillingEventKind.ACTIVATED), GRANT)

        assert state.tier is AccountTier.PROFESSIONAL
        assert state.status is SubscriptionStatus.ACTIVE


class TestUpdated:
    @pytest.mark.parametrize("status", ["canceled", "unpaid", "incomplete_expired"])
    def test_terminal_status_downgrades_with_grant(self, status):
        state = apply_billing_event(ACTIVE_PRO, _event(BillingEventKind.UPDATED, status=status), GRANT)

        assert state.tier is AccountTier.FREE
        assert state.status is SubscriptionStatus.CANCELLED
        assert state.balance == GRANT
        assert state.used_this_period == 0

    def test_past_due_keeps_tier_and_balance(self):
        state = apply_billing_event(
            ACTIVE_PRO, _event(BillingEventKind.UPDATED, status="past_due"), GRANT
        )

        assert state.tier is AccountTier.PROFESSIONAL
        assert state.status is SubscriptionStatus.PAST_DUE
        assert state.balance == ACTIVE_PRO.balance

    def test_renewal_extends_period(self):
        event = _event(
            BillingEventKind.UPDATED,
            status="active",
            tier=AccountTier.PROFESSIONAL,
            period_end=LATER_PERIOD_END,
        )

        state = apply_billing_event(ACTIVE_PRO, event, GRANT)

        assert state.status is SubscriptionStatus.ACTIVE
        assert state.period_end == LATER_PERIOD_END

    def test_recovers_from_past_due(self):
        past_due = ACTIVE_PRO.evolve(status=SubscriptionStatus.PAST_DUE)

        state = apply_billing_event(past_due, _event(BillingEventKind.UPDATED, status="active"), GRANT)

        assert state.status is SubscriptionStatus.ACTIVE

    def test_trialing_activates(self):
        event = _event(BillingEventKind.UPDATED, status="trialing", tier=AccountTier.BASIC)

        state = apply_billing_event(FREE, event, GRANT)

        assert state.tier is AccountTier.BASIC
        assert state.status is SubscriptionStatus.ACTIVE

    @pytest.mark.parametrize("status", ["incomplete", "paused", None])
    def test_unpaid_subscription_changes_nothing(self, status):
        event = _event(
            BillingEventKind.UPDATED,
            status=status,
            tier=AccountTier.BASIC,
            subscription_id="sub_2",
        )

        assert apply_billing_event(FREE, event, GRANT) is FREE


class TestDeleted:
    @pytest.mark.parametrize("prior_balance", [0, 2, 50])
    def test_any_state_becomes_cancelled_free_with_grant(self, prior_balance):
        state = apply_billing_event(
            ACTIVE_PRO.evolve(balance=prior_balance), _event(BillingEventKind.DELETED), GRANT
        )

        assert state.tier is AccountTier.FREE
        assert state.status is SubscriptionStatus.CANCELLED
        assert state.balance == GRANT
        assert state.stripe_subscription_id is None
        assert state.period_end is None
        assert state.stripe_customer_id == "cus_1"


class TestPaymentEvents:
    def test_payment_failed_marks_past_due_only(self):
        state = apply_billing_event(ACTIVE_PRO, _event(BillingEventKind.PAYMENT_FAILED), GRANT)

        assert state == ACTIVE_PRO.evolve(status=SubscriptionStatus.PAST_DUE)

    @pytest.mark.parametrize(
        "kind",
        [
            BillingEventKind.PAYMENT_SUCCEEDED,
            BillingEventKind.INFORMATIONAL,
            BillingEventKind.UNKNOWN,
        ],
    )
    def test_no_transition(self, kind):
        assert apply_billing_event(ACTIVE_PRO, _event(kind), GRANT) is ACTIVE_PRO


class TestReplay:
    @pytest.mark.parametrize(
        "event",
        [
            _event(BillingEventKind.ACTIVATED, tier=AccountTier.BASIC, subscription_id="sub_2"),
            _event(BillingEventKind.UPDATED, status="canceled"),
            _event(BillingEventKind.UPDATED, status="past_due"),
            _event(BillingEventKind.DELETED),
            _event(BillingEventKind.PAYMENT_FAILED),
        ],
        ids=["activated", "updated-canceled", "updated-past-due", "deleted", "payment-failed"],
    )
    def test_applying_twice_equals_applying_once(self, event):
        once = apply_billing_event(ACTIVE_PRO, event, GRANT)

        assert apply_billing_event(once, event, GRANT) == once
