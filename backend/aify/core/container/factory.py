"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.

Design principles:
- Single place for all wiring decisions
- Environment-aware: Stripe / OpenAI only when configured
- Fail fast: broken wiring crashes at startup, not at 3am
- Testable: can unit test factory logic with mock settings
"""

from prometheus_client import CollectorRegistry

from aify.adapters.generation import FakeImageGenerator, OpenAIImageGenerator
from aify.adapters.metrics import PrometheusBillingMetrics, PrometheusMetricsRenderer
from aify.core.config import Settings
from aify.core.container.container import Container
from aify.core.logging import logger
from aify.core.protocols import ImageGenerator, PaymentGatewayProtocol
from aify.core.shared_models import AccountTier
from aify.domains.accounts.provisioning import AccountProvisioner
from aify.domains.accounts.repository import AccountRepository
from aify.domains.credits.ledger import CreditLedger
from aify.domains.credits.repository import LedgerEntryRepository
from aify.domains.designs.service import DesignGenerationService
from aify.domains.subscriptions.reconciler import SubscriptionReconciler
from aify.domains.subscriptions.service import SubscriptionService


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring. It reads
    the settings and decides which adapter implementation to use for
    each protocol.

    Args:
        settings: Application settings (from core/config.py)

    Returns:
        Fully constructed Container ready for use
    """
    # -----------------------------------------------------------------
    # Metrics: one registry shared by the counters and the renderer
    # -----------------------------------------------------------------
    registry = CollectorRegistry()
    billing_metrics = PrometheusBillingMetrics(registry=registry)
    metrics_renderer = PrometheusMetricsRenderer(registry=registry)

    # -----------------------------------------------------------------
    # External providers
    # -----------------------------------------------------------------
    payment_gateway = _create_payment_gateway(settings)
    image_generator = _create_image_generator(settings)

    # -----------------------------------------------------------------
    # Repositories
    # -----------------------------------------------------------------
    account_repo = AccountRepository(lock_timeout_ms=settings.ACCOUNT_LOCK_TIMEOUT_MS)
    entry_repo = LedgerEntryRepository()

    # -----------------------------------------------------------------
    # Domains. The ledger and the reconciler share the account
    # repository so both serialize on the same row lock.
    # -----------------------------------------------------------------
    account_provisioner = AccountProvisioner(
        account_repo=account_repo,
        entry_repo=entry_repo,
        starting_grant=settings.FREE_TIER_GRANT,
    )
    credit_ledger = CreditLedger(
        account_repo=account_repo,
        entry_repo=entry_repo,
        metrics=billing_metrics,
        free_tier_grant=settings.FREE_TIER_GRANT,
        period_days=settings.FREE_TIER_PERIOD_DAYS,
    )
    subscription_reconciler = SubscriptionReconciler(
        payment_gateway=payment_gateway,
        account_repo=account_repo,
        entry_repo=entry_repo,
        ledger=credit_ledger,
        metrics=billing_metrics,
        free_tier_grant=settings.FREE_TIER_GRANT,
        reject_stale_events=settings.BILLING_REJECT_STALE_EVENTS,
    )
    subscription_service = SubscriptionService(
        payment_gateway=payment_gateway,
        account_repo=account_repo,
        topup_unit_amount_cents=settings.STRIPE_TOPUP_UNIT_AMOUNT_CENTS,
        topup_currency=settings.STRIPE_TOPUP_CURRENCY,
        portal_return_url=settings.BILLING_PORTAL_RETURN_URL,
    )
    design_service = DesignGenerationService(
        ledger=credit_ledger,
        generator=image_generator,
        generation_cost=settings.GENERATION_COST,
    )

    return Container(
        payment_gateway=payment_gateway,
        image_generator=image_generator,
        billing_metrics=billing_metrics,
        metrics_renderer=metrics_renderer,
        account_repo=account_repo,
        entry_repo=entry_repo,
        account_provisioner=account_provisioner,
        credit_ledger=credit_ledger,
        subscription_reconciler=subscription_reconciler,
        subscription_service=subscription_service,
        design_service=design_service,
    )


# ---------------------------------------------------------------------------
# Private factory functions
# ---------------------------------------------------------------------------


def _create_payment_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """Create payment gateway: Stripe if enabled, otherwise a null implementation."""
    if settings.STRIPE_ENABLED:
        from aify.adapters.payment.stripe import StripePaymentGateway

        if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
            raise ValueError(
                "STRIPE_ENABLED requires STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET"
            )
        return StripePaymentGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            price_ids={
                AccountTier.BASIC: settings.STRIPE_BASIC_PRICE_ID,
                AccountTier.INDIA: settings.STRIPE_INDIA_PRICE_ID,
                AccountTier.PROFESSIONAL: settings.STRIPE_PROFESSIONAL_PRICE_ID,
            },
        )

    from aify.adapters.payment.null import NullPaymentGateway

    return NullPaymentGateway()


def _create_image_generator(settings: Settings) -> ImageGenerator:
    """Create the image provider: OpenAI when a key is configured.

    Without a key the fake generator is wired in so local development and
    tests run without network access.
    """
    if settings.OPENAI_API_KEY:
        return OpenAIImageGenerator(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_IMAGE_MODEL,
            size=settings.OPENAI_IMAGE_SIZE,
            quality=settings.OPENAI_IMAGE_QUALITY,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )

    logger.warning("OPENAI_API_KEY not set, using the fake image generator")
    return FakeImageGenerator()
