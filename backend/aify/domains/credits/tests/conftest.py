"""Credits domain test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from aify.adapters.metrics import FakeBillingMetrics
from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.domains.accounts.fakes.repository import FakeAccountRepository
from aify.domains.credits.fakes.repository import FakeLedgerEntryRepository
from aify.domains.credits.ledger import CreditLedger
from aify.models import Account

DEFAULT_ACCOUNT_ID = UUID("00000000-0000-0000-0000-0000000000a1")
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_account(account_id: UUID = DEFAULT_ACCOUNT_ID, **overrides: Any) -> Account:
    defaults = dict(
        id=account_id,
        external_id=f"auth0|{account_id.hex[:8]}",
        email="user@example.com",
        display_name="Test User",
        tier=AccountTier.FREE.value,
        subscription_status=SubscriptionStatus.INACTIVE.value,
        balance=3,
        used_this_period=0,
        last_rollover_at=NOW - timedelta(days=1),
        stripe_customer_id=None,
        stripe_subscription_id=None,
        period_end=None,
        last_billing_event_at=None,
        created_at=NOW - timedelta(days=1),
        modified_at=NOW - timedelta(days=1),
    )
    defaults.update(overrides)
    return Account(**defaults)


class _Clock:
    """Settable clock for rollover tests."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


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
def clock():
    return _Clock()


@pytest.fixture
def ledger(account_repo, entry_repo, metrics, clock):
    return CreditLedger(
        account_repo=account_repo,
        entry_repo=entry_repo,
        metrics=metrics,
        free_tier_grant=3,
        period_days=30,
        clock=clock,
    )
