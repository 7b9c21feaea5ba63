"""Protocols for the subscriptions domain."""

from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.shared_models import AccountTier
from aify.models import Account
from aify.schemas.subscription import (
    CheckoutSessionResponse,
    PortalSessionResponse,
    PricingResponse,
    SubscriptionActionResponse,
    SubscriptionInfo,
)


class SubscriptionReconcilerProtocol(Protocol):
    """Applies verified billing webhook events to accounts."""

    async def process_webhook(self, db: AsyncSession, payload: bytes, signature: str) -> None:
        """Verify the signature and apply the event.

        Raises:
            UnverifiedEventError: signature or payload rejected, nothing applied.
        """
        ...


class SubscriptionServiceProtocol(Protocol):
    """User-initiated subscription operations."""

    def get_pricing(self) -> PricingResponse:
        """All plans, in display order."""
        ...

    def get_subscription(self, account: Account) -> SubscriptionInfo:
        """Subscription state of an account."""
        ...

    async def start_checkout(
        self,
        db: AsyncSession,
        account: Account,
        tier: AccountTier,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResponse:
        """Create a subscription checkout session."""
        ...

    async def start_top_up_checkout(
        self,
        db: AsyncSession,
        account: Account,
        credits: int,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResponse:
        """Create a one-time credit purchase checkout session."""
        ...

    async def cancel(self, account: Account) -> SubscriptionActionResponse:
        """Cancel the subscription at the end of the current period."""
        ...

    async def reactivate(self, account: Account) -> SubscriptionActionResponse:
        """Undo a pending cancellation."""
        ...

    async def create_portal_session(
        self, account: Account, return_url: Optional[str] = None
    ) -> PortalSessionResponse:
        """Open the provider's billing portal."""
        ...
