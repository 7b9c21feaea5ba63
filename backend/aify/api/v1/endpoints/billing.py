"""Stripe webhook endpoint.

The only unauthenticated writer of account state. Every request is verified
against the webhook signing secret before anything is applied.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from aify.api import deps
from aify.api.deps import Inject
from aify.core.logging import logger
from aify.domains.subscriptions.protocols import SubscriptionReconcilerProtocol

router = APIRouter()


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    reconciler: SubscriptionReconcilerProtocol = Inject(SubscriptionReconcilerProtocol),
) -> Response:
    """Handle Stripe webhook events.

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        db: Database session
        reconciler: Verifies the signature and applies the event

    Returns:
        200 ``{"received": true}`` once handled (unknown event types included),
        400 on a missing or invalid signature, 500 on a handler failure so
        Stripe redelivers
    """
    try:
        payload = await request.body()
    except Exception as e:
        logger.warning(f"Could not read webhook body: {e}")
        return Response(status_code=400)

    if not stripe_signature:
        logger.warning("Webhook request without Stripe-Signature header")
        return JSONResponse(status_code=400, content={"detail": "Missing Stripe-Signature"})

    try:
        await reconciler.process_webhook(db, payload, stripe_signature)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"detail": str(e)})
    except Exception as e:
        logger.error(f"Webhook handler failed: {e}")
        return JSONResponse(status_code=500, content={"detail": "Webhook processing failed"})

    return JSONResponse(status_code=200, content={"received": True})
