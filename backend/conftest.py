"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before the colocated tests under aify/, making its
fixtures available to domain, adapter and API tests alike.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables, set before any aify module import.
# Uses setdefault so real env vars (CI, e2e) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("AUTH_ENABLED", "false")
os.environ.setdefault("STRIPE_ENABLED", "false")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("DB_CREATE_SCHEMA", "false")


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_payment_gateway():
    """Fake PaymentGateway that records calls and accepts the fake signature."""
    from aify.adapters.payment.fake import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture
def fake_image_generator():
    """Fake ImageGenerator that returns a canned image."""
    from aify.adapters.generation.fake import FakeImageGenerator

    return FakeImageGenerator()


@pytest.fixture
def fake_billing_metrics():
    """Fake BillingMetrics that records counter increments."""
    from aify.adapters.metrics import FakeBillingMetrics

    return FakeBillingMetrics()


@pytest.fixture
def fake_metrics_renderer():
    """Fake MetricsRenderer with canned output."""
    from aify.adapters.metrics import FakeMetricsRenderer

    return FakeMetricsRenderer()


@pytest.fixture
def fake_account_repo():
    """In-memory account repository with a per-account lock."""
    from aify.domains.accounts.fakes.repository import FakeAccountRepository

    return FakeAccountRepository()


@pytest.fixture
def fake_entry_repo():
    """In-memory ledger entry repository."""
    from aify.domains.credits.fakes.repository import FakeLedgerEntryRepository

    return FakeLedgerEntryRepository()


# ---------------------------------------------------------------------------
# Test container: real domain services wired over fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    fake_payment_gateway,
    fake_image_generator,
    fake_billing_metrics,
    fake_metrics_renderer,
    fake_account_repo,
    fake_entry_repo,
):
    """A Container whose adapters and repositories are all fakes.

    Domain services are the real implementations, so API tests exercise the
    ledger and reconciler end to end against in-memory state.

    For partial overrides, use container.replace():
        failing = test_container.replace(design_service=...)
    """
    from aify.core.container import Container
    from aify.domains.accounts.provisioning import AccountProvisioner
    from aify.domains.credits.ledger import CreditLedger
    from aify.domains.designs.service import DesignGenerationService
    from aify.domains.subscriptions.reconciler import SubscriptionReconciler
    from aify.domains.subscriptions.service import SubscriptionService

    ledger = CreditLedger(
        account_repo=fake_account_repo,
        entry_repo=fake_entry_repo,
        metrics=fake_billing_metrics,
    )
    return Container(
        payment_gateway=fake_payment_gateway,
        image_generator=fake_image_generator,
        billing_metrics=fake_billing_metrics,
        metrics_renderer=fake_metrics_renderer,
        account_repo=fake_account_repo,
        entry_repo=fake_entry_repo,
        account_provisioner=AccountProvisioner(
            account_repo=fake_account_repo, entry_repo=fake_entry_repo
        ),
        credit_ledger=ledger,
        subscription_reconciler=SubscriptionReconciler(
            payment_gateway=fake_payment_gateway,
            account_repo=fake_account_repo,
            entry_repo=fake_entry_repo,
            ledger=ledger,
            metrics=fake_billing_metrics,
        ),
        subscription_service=SubscriptionService(
            payment_gateway=fake_payment_gateway,
            account_repo=fake_account_repo,
        ),
        design_service=DesignGenerationService(
            ledger=ledger,
            generator=fake_image_generator,
            refund_backoff_seconds=0,
        ),
    )
