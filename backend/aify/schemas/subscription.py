"""Subscription and checkout schema module."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl

from aify.core.shared_models import AccountTier, SubscriptionStatus


class PricingTier(BaseModel):
    """A purchasable (or free) plan."""

    id: str
    name: str
    price: int
    currency: str = "USD"
    interval: str = "month"
    features: list[str]
    design_limit: Optional[int] = None
    watermark: bool
    tier: AccountTier
    available: bool = True


class PricingResponse(BaseModel):
    """All plans, in display order."""

    tiers: list[PricingTier]


class SubscriptionInfo(BaseModel):
    """Subscription state of the calling account."""

    tier: AccountTier
    subscription_status: SubscriptionStatus
    balance: int
    period_end: Optional[datetime] = None
    has_billing_account: bool


class CheckoutSessionRequest(BaseModel):
    """Start a subscription checkout."""

    tier: AccountTier
    success_url: HttpUrl
    cancel_url: HttpUrl


class TopUpCheckoutRequest(BaseModel):
    """Start a one-time credit purchase."""

    credits: int = Field(..., gt=0, le=500)
    success_url: HttpUrl
    cancel_url: HttpUrl


class CheckoutSessionResponse(BaseModel):
    """Where to redirect the user to pay."""

    session_id: str
    checkout_url: str


class PortalSessionRequest(BaseModel):
    """Open the billing portal."""

    return_url: Optional[HttpUrl] = None


class PortalSessionResponse(BaseModel):
    """Billing portal URL."""

    portal_url: str


class SubscriptionActionResponse(BaseModel):
    """Outcome of cancel / reactivate."""

    message: str
    cancel_at: Optional[datetime] = None
