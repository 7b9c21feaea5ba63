"""Stripe payment gateway.

The Stripe SDK is synchronous; every network call runs in a worker thread
so the event loop never blocks on it. SDK failures are wrapped as
ExternalServiceError and re-wrapped at the domain boundary.
"""

import asyncio
import functools
from typing import Any, Callable, Dict, Optional, TypeVar

import stripe

from aify.core.exceptions import ExternalServiceError
from aify.core.logging import logger
from aify.core.protocols.payment import PaymentGatewayProtocol
from aify.core.shared_models import AccountTier

T = TypeVar("T")


class StripePaymentGateway(PaymentGatewayProtocol):
    """PaymentGatewayProtocol backed by the Stripe API."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        price_ids: dict[AccountTier, Optional[str]],
    ) -> None:
        """Initialize with credentials and the tier to price-id mapping."""
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._price_ids = {tier: pid for tier, pid in price_ids.items() if pid}

    async def _call(
        self, operation: str, fn: Callable[..., T], *args: Any, **params: Any
    ) -> T:
        """Run a blocking SDK call in a thread, wrapping Stripe errors."""
        try:
            return await asyncio.to_thread(
                functools.partial(fn, *args, api_key=self._api_key, **params)
            )
        except stripe.StripeError as e:
            message = getattr(e, "user_message", None) or str(e)
            logger.error(f"Stripe {operation} failed: {message}")
            raise ExternalServiceError("Stripe", f"{operation} failed: {message}") from e

    # -------------------------------------------------------------------------
    # Price / tier mapping
    # -------------------------------------------------------------------------

    def get_price_id_mapping(self) -> dict[str, AccountTier]:
        """Reverse mapping from price IDs to tiers."""
        return {pid: tier for tier, pid in self._price_ids.items()}

    def get_price_for_tier(self, tier: AccountTier) -> Optional[str]:
        """Price ID for a paid tier, if configured."""
        return self._price_ids.get(tier)

    # -------------------------------------------------------------------------
    # Customer operations
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        email: str,
        name: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a Stripe customer."""
        return await self._call(
            "create_customer",
            stripe.Customer.create,
            email=email,
            name=name,
            metadata=metadata or {},
        )

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def update_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Any:
        """Update a subscription (currently only the cancel-at-period-end flag)."""
        params: dict[str, Any] = {}
        if cancel_at_period_end is not None:
            params["cancel_at_period_end"] = cancel_at_period_end
        return await self._call(
            "update_subscription", stripe.Subscription.modify, subscription_id, **params
        )

    # -------------------------------------------------------------------------
    # Checkout operations
    # -------------------------------------------------------------------------

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a subscription checkout session.

        The metadata is copied onto the subscription so later
        ``customer.subscription.*`` events resolve the account directly.
        """
        metadata = metadata or {}
        return await self._call(
            "create_checkout_session",
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=metadata.get("account_id"),
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )

    async def create_topup_checkout_session(
        self,
        *,
        customer_id: str,
        credits: int,
        amount_cents: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a one-time payment checkout session for extra credits."""
        metadata = metadata or {}
        return await self._call(
            "create_topup_checkout_session",
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount_cents,
                        "product_data": {"name": f"{credits} design credits"},
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=metadata.get("account_id"),
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
        )

    # -------------------------------------------------------------------------
    # Portal operations
    # -------------------------------------------------------------------------

    async def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        """Create a customer portal session."""
        return await self._call(
            "create_portal_session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Verify and construct the webhook event.

        Raises ValueError for a bad signature or an unparseable payload.
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid signature: {e}") from e
