"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.

Design principles:
- Container serves, factory builds
- Fail fast: all construction at startup
- Type safety: fields are protocol types
- Testing: construct directly with fakes
"""

from dataclasses import dataclass, replace
from typing import Any

from aify.core.protocols import (
    BillingMetrics,
    ImageGenerator,
    MetricsRenderer,
    PaymentGatewayProtocol,
)
from aify.domains.accounts.protocols import (
    AccountProvisionerProtocol,
    AccountRepositoryProtocol,
)
from aify.domains.credits.protocols import CreditLedgerProtocol
from aify.domains.credits.repository import LedgerEntryRepositoryProtocol
from aify.domains.designs.protocols import DesignGenerationServiceProtocol
from aify.domains.subscriptions.protocols import (
    SubscriptionReconcilerProtocol,
    SubscriptionServiceProtocol,
)


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by factory
        from aify.core.container import container
        await container.credit_ledger.debit(db, account_id, 1, "generation")

        # Testing: construct directly with fakes (see backend/conftest.py
        # for the full test_container fixture)
        test_container = Container(payment_gateway=FakePaymentGateway(), ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from aify.api.deps import Inject
        async def my_endpoint(ledger: CreditLedgerProtocol = Inject(CreditLedgerProtocol)):
            await ledger.get_balance(db, account_id)
    """

    # External providers
    payment_gateway: PaymentGatewayProtocol
    image_generator: ImageGenerator

    # Metrics (billing counters + renderer for the scrape endpoint)
    billing_metrics: BillingMetrics
    metrics_renderer: MetricsRenderer

    # Repositories
    account_repo: AccountRepositoryProtocol
    entry_repo: LedgerEntryRepositoryProtocol

    # Accounts domain
    account_provisioner: AccountProvisionerProtocol

    # Credits domain: the only writer of balances besides the reconciler
    credit_ledger: CreditLedgerProtocol

    # Subscriptions domain
    subscription_reconciler: SubscriptionReconcilerProtocol
    subscription_service: SubscriptionServiceProtocol

    # Designs domain
    design_service: DesignGenerationServiceProtocol

    # -----------------------------------------------------------------
    # Convenience methods
    # -----------------------------------------------------------------

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(image_generator=FakeImageGenerator(should_raise=...))

        Args:
            **changes: Dependency name -> new implementation

        Returns:
            New Container with specified dependencies replaced
        """
        return replace(self, **changes)
