"""Subscription service: pricing, checkout, cancellation and the billing portal.

Nothing in here writes tier, status or balance. Those only change when the
provider confirms them through a webhook handled by the reconciler. The one
account write, the Stripe customer id, happens under the account lock after
the provider call has returned.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import logger
from aify.core.protocols import PaymentGatewayProtocol
from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.domains.accounts.repository import AccountRepositoryProtocol
from aify.domains.subscriptions.exceptions import (
    BillingNotAvailableError,
    SubscriptionStateError,
    wrap_gateway_errors,
)
from aify.domains.subscriptions.protocols import SubscriptionServiceProtocol
from aify.domains.subscriptions.types import PRICING_TIERS
from aify.models import Account
from aify.schemas.subscription import (
    CheckoutSessionResponse,
    PortalSessionResponse,
    PricingResponse,
    SubscriptionActionResponse,
    SubscriptionInfo,
)

_CANCELLABLE = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAST_DUE.value)


class SubscriptionService(SubscriptionServiceProtocol):
    """User-initiated subscription operations backed by the payment gateway."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        account_repo: AccountRepositoryProtocol,
        topup_unit_amount_cents: int = 200,
        topup_currency: str = "usd",
        portal_return_url: str = "https://aifyinteriors.com/account",
    ) -> None:
        """Initialize with the gateway and top-up pricing."""
        self._payment_gateway = payment_gateway
        self._account_repo = account_repo
        self._topup_unit_amount_cents = topup_unit_amount_cents
        self._topup_currency = topup_currency
        self._portal_return_url = portal_return_url

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_pricing(self) -> PricingResponse:
        """All plans; paid plans without a configured price are marked unavailable."""
        tiers = [
            tier.model_copy(
                update={
                    "available": not tier.tier.is_paid
                    or self._payment_gateway.get_price_for_tier(tier.tier) is not None
                }
            )
            for tier in PRICING_TIERS
        ]
        return PricingResponse(tiers=tiers)

    def get_subscription(self, account: Account) -> SubscriptionInfo:
        """Subscription state of an account."""
        return SubscriptionInfo(
            tier=AccountTier(account.tier),
            subscription_status=SubscriptionStatus(account.subscription_status),
            balance=account.balance,
            period_end=account.period_end,
            has_billing_account=bool(account.stripe_customer_id),
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @wrap_gateway_errors
    async def start_checkout(
        self,
        db: AsyncSession,
        account: Account,
        tier: AccountTier,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResponse:
        """Create a subscription checkout session for a paid tier."""
        if not tier.is_paid:
            raise SubscriptionStateError("Cannot create checkout session for free tier")
        if (
            AccountTier(account.tier).is_paid
            and account.subscription_status == SubscriptionStatus.ACTIVE.value
        ):
            raise SubscriptionStateError(
                "You already have an active subscription. "
                "Please cancel your current subscription before subscribing to a new plan."
            )

        price_id = self._payment_gateway.get_price_for_tier(tier)
        if not price_id:
            raise SubscriptionStateError(f"Price not configured for tier: {tier.value}")

        customer_id = await self._ensure_customer(db, account)
        session = await self._payment_gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"account_id": str(account.id), "tier": tier.value},
        )
        if session is None:
            raise BillingNotAvailableError()

        logger.with_context(account_id=str(account.id)).info(
            f"Created {tier.value} checkout session {session.id}"
        )
        return CheckoutSessionResponse(session_id=session.id, checkout_url=session.url)

    @wrap_gateway_errors
    async def start_top_up_checkout(
        self,
        db: AsyncSession,
        account: Account,
        credits: int,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResponse:
        """Create a one-time payment checkout for ``credits`` extra credits."""
        if credits <= 0:
            raise SubscriptionStateError("Credits must be a positive integer")

        customer_id = await self._ensure_customer(db, account)
        session = await self._payment_gateway.create_topup_checkout_session(
            customer_id=customer_id,
            credits=credits,
            amount_cents=credits * self._topup_unit_amount_cents,
            currency=self._topup_currency,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"account_id": str(account.id), "credits": str(credits)},
        )
        if session is None:
            raise BillingNotAvailableError()
        return CheckoutSessionResponse(session_id=session.id, checkout_url=session.url)

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    @wrap_gateway_errors
    async def cancel(self, account: Account) -> SubscriptionActionResponse:
        """Cancel at period end. The downgrade arrives later as a webhook."""
        if (
            not account.stripe_subscription_id
            or account.subscription_status not in _CANCELLABLE
        ):
            raise SubscriptionStateError("No active subscription to cancel")

        subscription = await self._payment_gateway.update_subscription(
            account.stripe_subscription_id, cancel_at_period_end=True
        )
        cancel_at = _period_end(subscription) or account.period_end
        logger.with_context(account_id=str(account.id)).info(
            "Subscription set to cancel at period end"
        )
        return SubscriptionActionResponse(
            message="Subscription will be cancelled at the end of the billing period",
            cancel_at=cancel_at,
        )

    @wrap_gateway_errors
    async def reactivate(self, account: Account) -> SubscriptionActionResponse:
        """Undo a pending cancel-at-period-end."""
        if not account.stripe_subscription_id:
            raise SubscriptionStateError("No subscription to reactivate")

        await self._payment_gateway.update_subscription(
            account.stripe_subscription_id, cancel_at_period_end=False
        )
        logger.with_context(account_id=str(account.id)).info("Subscription reactivated")
        return SubscriptionActionResponse(message="Subscription reactivated")

    @wrap_gateway_errors
    async def create_portal_session(
        self, account: Account, return_url: Optional[str] = None
    ) -> PortalSessionResponse:
        """Open the provider's self-service billing portal."""
        if not account.stripe_customer_id:
            raise SubscriptionStateError("No billing account found")

        session = await self._payment_gateway.create_portal_session(
            account.stripe_customer_id, return_url or self._portal_return_url
        )
        if session is None:
            raise BillingNotAvailableError()
        return PortalSessionResponse(portal_url=session.url)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_customer(self, db: AsyncSession, account: Account) -> str:
        """Return the account's Stripe customer id, creating the customer on first use."""
        if account.stripe_customer_id:
            return account.stripe_customer_id

        customer = await self._payment_gateway.create_customer(
            email=account.email,
            name=account.display_name or account.email,
            metadata={"account_id": str(account.id)},
        )
        if customer is None:
            raise BillingNotAvailableError()

        async with self._account_repo.locked(db, account.id) as locked:
            if locked.stripe_customer_id:
                # A concurrent checkout stored one first; keep it.
                return locked.stripe_customer_id
            locked.stripe_customer_id = customer.id

        account.stripe_customer_id = customer.id
        return customer.id


def _period_end(subscription: Any) -> Optional[datetime]:
    value = getattr(subscription, "current_period_end", None)
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
