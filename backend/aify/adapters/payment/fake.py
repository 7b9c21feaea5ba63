"""Fake payment gateway for testing.

In-memory implementation of PaymentGatewayProtocol.
Records all calls for assertions. No external API calls.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional
from uuid import uuid4

from aify.core.protocols.payment import PaymentGatewayProtocol
from aify.core.shared_models import AccountTier

VALID_SIGNATURE = "t=0,v1=fake"


class FakePaymentGateway(PaymentGatewayProtocol):
    """Test implementation of PaymentGatewayProtocol.

    ``verify_webhook_signature`` accepts only ``valid_signature`` and returns
    the JSON payload decoded as a plain dict, which the reconciler reads the
    same way it reads a ``stripe.Event``.

    Usage::

        fake = FakePaymentGateway()
        customer = await fake.create_customer("a@b.com", "Jane")
        assert fake.call_count("create_customer") == 1
    """

    def __init__(
        self,
        price_ids: Optional[dict[AccountTier, str]] = None,
        should_raise: Optional[Exception] = None,
        valid_signature: str = VALID_SIGNATURE,
    ) -> None:
        """Initialize with optional price IDs and error injection."""
        self._price_ids = (
            price_ids
            if price_ids is not None
            else {
                AccountTier.BASIC: "price_basic",
                AccountTier.PROFESSIONAL: "price_pro",
            }
        )
        self._should_raise = should_raise
        self._valid_signature = valid_signature
        self._calls: list[tuple[str, tuple, dict]] = []

        # In-memory state
        self._customers: dict[str, _obj] = {}
        self._subscriptions: dict[str, _obj] = {}

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self._calls.append((method, args, kwargs))
        if self._should_raise:
            raise self._should_raise

    # ---- Test helpers ----

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for name, _, _ in self._calls if name == method)

    def calls_for(self, method: str) -> list[tuple[tuple, dict]]:
        """Return (args, kwargs) for each call to *method*."""
        return [(a, k) for name, a, k in self._calls if name == method]

    def seed_subscription(self, subscription_id: str, **fields: Any) -> _obj:
        """Register a subscription so updates return realistic shapes."""
        sub = _obj(id=subscription_id, cancel_at_period_end=False, **fields)
        self._subscriptions[subscription_id] = sub
        return sub

    def clear(self) -> None:
        """Reset all recorded state."""
        self._calls.clear()
        self._customers.clear()
        self._subscriptions.clear()

    # ---- Price / tier mapping ----

    def get_price_id_mapping(self) -> dict[str, AccountTier]:
        """Return reverse mapping from price IDs to tiers."""
        return {pid: tier for tier, pid in self._price_ids.items() if pid}

    def get_price_for_tier(self, tier: AccountTier) -> Optional[str]:
        """Return fake price ID for a tier."""
        return self._price_ids.get(tier)

    # ---- Customer operations ----

    async def create_customer(
        self,
        email: str,
        name: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Create a fake customer in memory."""
        self._record("create_customer", email, name, metadata=metadata)
        cid = f"cus_{uuid4().hex[:14]}"
        obj = _obj(id=cid, email=email, name=name, metadata=metadata or {})
        self._customers[cid] = obj
        return obj

    # ---- Subscription operations ----

    async def update_subscription(
        self,
        subscription_id: str,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Any:
        """Update a fake subscription in memory."""
        self._record(
            "update_subscription",
            subscription_id,
            cancel_at_period_end=cancel_at_period_end,
        )
        sub = self._subscriptions.get(subscription_id, _obj(id=subscription_id))
        if cancel_at_period_end is not None:
            sub.cancel_at_period_end = cancel_at_period_end
        return sub

    # ---- Checkout operations ----

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Return a fake checkout session URL."""
        self._record("create_checkout_session", customer_id, price_id, metadata=metadata)
        return _obj(id=f"cs_{uuid4().hex[:14]}", url="https://checkout.fake/session")

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
        """Return a fake one-time payment checkout session."""
        self._record(
            "create_topup_checkout_session",
            customer_id,
            credits=credits,
            amount_cents=amount_cents,
            currency=currency,
            metadata=metadata,
        )
        return _obj(
            id=f"cs_{uuid4().hex[:14]}",
            url="https://checkout.fake/topup",
            payment_intent=f"pi_{uuid4().hex[:14]}",
        )

    # ---- Portal operations ----

    async def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        """Return a fake portal session URL."""
        self._record("create_portal_session", customer_id, return_url=return_url)
        return _obj(url="https://portal.fake/session")

    # ---- Webhook operations ----

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Accept only the configured signature; return the decoded payload."""
        self._calls.append(("verify_webhook_signature", (signature,), {}))
        if signature != self._valid_signature:
            raise ValueError("Invalid signature")
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid payload: {e}") from e


class _obj:
    """Tiny attribute-bag to emulate Stripe object shapes in tests."""

    def __init__(self, **kwargs: Any):
        for k, v in kwargs.items():
            setattr(self, k, v)

    def get(self, key: str, default: Any = None) -> Any:
        """Get attribute by key with default."""
        return getattr(self, key, default)
