"""Null payment gateway for when Stripe is disabled.

Satisfies PaymentGatewayProtocol so the container can always be fully
constructed.

Lookups return empty defaults and ``create_customer`` returns None, so the
pricing page still renders and callers can tell billing is off without
catching anything.

User-facing billing operations (checkout sessions, subscription updates,
portal) raise BillingNotAvailableError: they need a real payment provider
and should fail clearly.

verify_webhook_signature raises ValueError, matching the Stripe adapter's
contract for invalid signatures.
"""

from typing import Any, Dict, Optional

from aify.core.protocols.payment import PaymentGatewayProtocol
from aify.core.shared_models import AccountTier
from aify.domains.subscriptions.exceptions import BillingNotAvailableError


class NullPaymentGateway(PaymentGatewayProtocol):
    """No-op payment gateway used when Stripe is disabled."""

    # ------------------------------------------------------------------
    # Lookups and customer creation: empty defaults
    # ------------------------------------------------------------------

    def get_price_for_tier(self, tier: AccountTier) -> Optional[str]:
        """Return None: no prices configured."""
        return None

    def get_price_id_mapping(self) -> dict[str, AccountTier]:
        """Return empty mapping."""
        return {}

    async def create_customer(
        self,
        email: str,
        name: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """No-op: return None so callers naturally skip billing."""
        return None

    # ------------------------------------------------------------------
    # User-facing billing operations: raise BillingNotAvailableError
    # ------------------------------------------------------------------

    async def update_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Any:
        """Raise: requires a real payment provider."""
        raise BillingNotAvailableError()

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Raise: requires a real payment provider."""
        raise BillingNotAvailableError()

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
        """Raise: requires a real payment provider."""
        raise BillingNotAvailableError()

    async def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        """Raise: requires a real payment provider."""
        raise BillingNotAvailableError()

    # ------------------------------------------------------------------
    # Webhook: ValueError matches the Stripe adapter contract
    # ------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Raise ValueError: billing is not enabled."""
        raise ValueError("Billing is not enabled")
