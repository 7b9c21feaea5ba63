"""API endpoints for subscription management.

This module provides the HTTP interface for plans, checkout and the
subscription lifecycle, delegating all business logic to the subscription
service. State changes that Stripe confirms asynchronously (activation,
downgrade, top-up credits) arrive through the billing webhook.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aify import schemas
from aify.api import deps
from aify.api.context import ApiContext
from aify.api.deps import Inject
from aify.domains.subscriptions.protocols import SubscriptionServiceProtocol

router = APIRouter()


@router.get("/pricing", response_model=schemas.PricingResponse)
async def get_pricing(
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.PricingResponse:
    """List all plans. Public, no authentication required."""
    return subscriptions.get_pricing()


@router.get("/me", response_model=schemas.SubscriptionInfo)
async def get_my_subscription(
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.SubscriptionInfo:
    """Get the caller's tier, status, balance and billing period."""
    return subscriptions.get_subscription(ctx.account)


@router.post("/checkout", response_model=schemas.CheckoutSessionResponse)
async def create_checkout_session(
    request: schemas.CheckoutSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.CheckoutSessionResponse:
    """Create a Stripe checkout session for a paid plan.

    Args:
        request: Checkout session request with tier and URLs
        db: Database session
        ctx: Authentication context
        subscriptions: Subscription service

    Returns:
        Checkout session id and the URL to redirect the user to
    """
    return await subscriptions.start_checkout(
        db,
        ctx.account,
        request.tier,
        success_url=str(request.success_url),
        cancel_url=str(request.cancel_url),
    )


@router.post("/top-up", response_model=schemas.CheckoutSessionResponse)
async def create_top_up_session(
    request: schemas.TopUpCheckoutRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.CheckoutSessionResponse:
    """Create a one-time checkout for extra credits.

    The credits are added when Stripe reports the completed payment.
    """
    return await subscriptions.start_top_up_checkout(
        db,
        ctx.account,
        request.credits,
        success_url=str(request.success_url),
        cancel_url=str(request.cancel_url),
    )


@router.post("/cancel", response_model=schemas.SubscriptionActionResponse)
async def cancel_subscription(
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.SubscriptionActionResponse:
    """Cancel the current subscription.

    The subscription will be cancelled at the end of the current billing
    period, allowing continued access until then.
    """
    return await subscriptions.cancel(ctx.account)


@router.post("/reactivate", response_model=schemas.SubscriptionActionResponse)
async def reactivate_subscription(
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.SubscriptionActionResponse:
    """Reactivate a subscription that's set to cancel."""
    return await subscriptions.reactivate(ctx.account)


@router.post("/billing-portal", response_model=schemas.PortalSessionResponse)
async def create_portal_session(
    request: Optional[schemas.PortalSessionRequest] = None,
    ctx: ApiContext = Depends(deps.get_context),
    subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
) -> schemas.PortalSessionResponse:
    """Create a Stripe customer portal session.

    The customer portal allows users to update payment methods, download
    invoices and manage their subscription.
    """
    return_url = str(request.return_url) if request and request.return_url else None
    return await subscriptions.create_portal_session(ctx.account, return_url=return_url)
