"""Payment gateway protocol.

Cross-cutting infrastructure protocol for payment processing (Stripe, etc.).
All methods must be implemented by the same provider; the protocol is not split.

Direct consumers: SubscriptionService, SubscriptionReconciler.
"""

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from aify.core.shared_models import AccountTier


@runtime_checkable
class PaymentGatewayProtocol(Protocol):
    """Protocol for payment gateway operations.

    Abstracts all payment provider interactions (customers, subscriptions,
    checkout, portal, webhooks).
    """

    # -------------------------------------------------------------------------
    # Price / tier mapping
    # -------------------------------------------------------------------------

    def get_price_id_mapping(self) -> dict[str, AccountTier]:
        """Get reverse mapping from price IDs to tiers."""
        ...

    def get_price_for_tier(self, tier: AccountTier) -> Optional[str]:
        """Get payment provider price ID for a paid tier."""
        ...

    # -------------------------------------------------------------------------
    # Customer operations
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        email: str,
        name: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a customer in the payment provider."""
        ...

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def update_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Any:
        """Update a subscription."""
        ...

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
        """Create a checkout session for a subscription."""
        ...

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
        """Create a one-time payment checkout session for a credit top-up."""
        ...

    # -------------------------------------------------------------------------
    # Portal operations
    # -------------------------------------------------------------------------

    async def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        """Create a customer portal session."""
        ...

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Verify and construct webhook event from payload and signature.

        Raises ValueError when the signature or payload is invalid.
        """
        ...
