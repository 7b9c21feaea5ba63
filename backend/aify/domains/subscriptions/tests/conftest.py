"""Subscriptions domain test fixtures and helpers."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from aify.adapters.metrics import FakeBillingMetrics
from aify.adapters.payment.fake import FakePaymentGateway
from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.domains.accounts.fakes.repository import FakeAccountRepository
from aify.domains.credits.fakes.repository import FakeLedgerEntryRepository
from aify.domains.credits.ledger import CreditLedger
from aify.domains.subscriptions.reconciler import SubscriptionReconciler
from aify.domains.subscriptions.service import SubscriptionService
from aify.models import Account

ACCOUNT_ID = UUID("00000000-0000-0000-0000-0000000000b2")
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
PERIOD_END = datetime(2025, 7, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ts(value: datetime) -> int:
    return int(value.timestamp())


def _make_account(account_id: UUID = ACCOUNT_ID, **overrides: Any) -> Account:
    defaults = dict(
        id=account_id,
        external_id=f"auth0|{account_id.hex[:8]}",
        email="owner@example.com",
        display_name="Room Owner",
        tier=AccountTier.FREE.value,
        subscription_status=SubscriptionStatus.INACTIVE.value,
        balance=3,
        used_this_period=0,
        last_rollover_at=NOW - timedelta(days=1),
        stripe_customer_id=None,
        stripe_subscription_id=None,
        period_end=None,
        last_billing_event_at=None,
        created_at=NOW - timedelta(days=10),
        modified_at=NOW - timedelta(days=1),
    )
    defaults.update(overrides)
    return Account(**defaults)


def _make_paid_account(**overrides: Any) -> Account:
    defaults = dict(
        tier=AccountTier.BASIC.value,
        subscription_status=SubscriptionStatus.ACTIVE.value,
        balance=0,
        stripe_customer_id="cus_1",
        stripe_subscription_id="sub_1",
        period_end=PERIOD_END,
    )
    defaults.update(overrides)
    return _make_account(**defaults)


def _make_stripe_event(
    event_type: str,
    obj: dict,
    *,
    event_id: str = "evt_1",
    created: Optional[datetime] = NOW,
) -> dict:
    """Build a Stripe event in its JSON shape."""
    event = {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }
    if created is not None:
        event["created"] = _ts(created)
    return event


def _subscription_obj(
    status: str = "active",
    *,
    subscription_id: str = "sub_1",
    customer_id: str = "cus_1",
    price_id: Optional[str] = "price_basic",
    metadata: Optional[dict] = None,
    period_end: datetime = PERIOD_END,
) -> dict:
    items = [{"price": {"id": price_id}}] if price_id else []
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "current_period_end": _ts(period_end),
        "items": {"object": "list", "data": items},
        "metadata": metadata or {},
    }


def _checkout_obj(
    mode: str = "subscription",
    *,
    metadata: Optional[dict] = None,
    customer_id: str = "cus_1",
    subscription_id: Optional[str] = "sub_1",
    payment_intent: Optional[str] = None,
) -> dict:
    return {
        "id": "cs_1",
        "object": "checkout.session",
        "mode": mode,
        "customer": customer_id,
        "subscription": subscription_id,
        "payment_intent": payment_intent,
        "metadata": metadata or {},
    }


def _payload(event: dict) -> bytes:
    return json.dumps(event).encode()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def account_repo():
    return FakeAccountRepository()


@pytest.fixture
def entry_repo():
    return FakeLedgerEntryRepository()


@pytest.fixture
def metrics():
    return FakeBillingMetrics()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def ledger(account_repo, entry_repo, metrics):
    return CreditLedger(
        account_repo=account_repo,
        entry_repo=entry_repo,
        metrics=metrics,
        free_tier_grant=3,
        clock=lambda: NOW,
    )


@pytest.fixture
def reconciler(gateway, account_repo, entry_repo, ledger, metrics):
    return SubscriptionReconciler(
        payment_gateway=gateway,
        account_repo=account_repo,
        entry_repo=entry_repo,
        ledger=ledger,
        metrics=metrics,
        free_tier_grant=3,
        clock=lambda: NOW,
    )


@pytest.fixture
def service(gateway, account_repo):
    return SubscriptionService(payment_gateway=gateway, account_repo=account_repo)
