"""Types for the subscriptions domain.

``BillingEvent`` is the provider-neutral view of a Stripe webhook event and
``AccountState`` the slice of an Account that billing transitions act on.
Both are frozen so ``apply_billing_event`` can stay a pure function.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.schemas.subscription import PricingTier

# Stripe subscription statuses that end paid access.
TERMINAL_STATUSES = frozenset({"canceled", "unpaid", "incomplete_expired"})

# Stripe subscription statuses that grant paid access. Anything else that is
# neither terminal nor past_due (incomplete, paused) leaves the account alone.
PAID_STATUSES = frozenset({"active", "trialing"})


class BillingEventKind(str, Enum):
    """What a billing event means for an account."""

    ACTIVATED = "activated"
    UPDATED = "updated"
    DELETED = "deleted"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    TOPUP = "topup"
    INFORMATIONAL = "informational"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Stripe object access
# ---------------------------------------------------------------------------


def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a StripeObject, a dict or an attribute bag."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    value = getattr(obj, key, None)
    if value is None and hasattr(obj, "get"):
        try:
            value = obj.get(key)
        except (AttributeError, KeyError, TypeError):
            value = None
    return default if value is None else value


def _ref(value: Any) -> Optional[str]:
    """Stripe references are either an id string or an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _parse_uuid(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _parse_tier(value: Any) -> Optional[AccountTier]:
    if not value:
        return None
    try:
        return AccountTier(str(value))
    except ValueError:
        return None


def _parse_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _subscription_items(obj: Any) -> list[Any]:
    items = _field(obj, "items")
    data = _field(items, "data") if items is not None and not callable(items) else None
    return list(data or [])


def _subscription_period_end(obj: Any) -> Optional[datetime]:
    """``current_period_end`` moved from the subscription to its items in newer API versions."""
    top_level = _field(obj, "current_period_end")
    if top_level is not None:
        return _timestamp(top_level)
    ends = [_field(item, "current_period_end") for item in _subscription_items(obj)]
    ends = [e for e in ends if e is not None]
    return _timestamp(max(ends)) if ends else None


def _tier_from_prices(obj: Any, price_mapping: dict[str, AccountTier]) -> Optional[AccountTier]:
    for item in _subscription_items(obj):
        price_id = _ref(_field(item, "price"))
        if price_id in price_mapping:
            return price_mapping[price_id]
    return None


# ---------------------------------------------------------------------------
# BillingEvent
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BillingEvent:
    """Normalized billing webhook event."""

    id: str
    type: str
    kind: BillingEventKind
    created: Optional[datetime] = None
    account_id: Optional[UUID] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    status: Optional[str] = None
    tier: Optional[AccountTier] = None
    period_end: Optional[datetime] = None
    checkout_mode: Optional[str] = None
    payment_ref: Optional[str] = None
    credits: Optional[int] = None

    @classmethod
    def from_stripe(
        cls, event: Any, price_mapping: Optional[dict[str, AccountTier]] = None
    ) -> "BillingEvent":
        """Build from a verified ``stripe.Event`` (or an equivalent attribute bag)."""
        price_mapping = price_mapping or {}
        event_type = str(_field(event, "type", ""))
        obj = _field(_field(event, "data"), "object")
        metadata = _field(obj, "metadata") or {}

        common = dict(
            id=str(_field(event, "id", "")),
            type=event_type,
            created=_timestamp(_field(event, "created")),
            account_id=_parse_uuid(_field(metadata, "account_id")),
            customer_id=_ref(_field(obj, "customer")),
        )

        if event_type == "checkout.session.completed":
            mode = _field(obj, "mode")
            credits = _parse_int(_field(metadata, "credits"))
            if mode == "subscription":
                kind = BillingEventKind.ACTIVATED
            elif mode == "payment" and credits is not None and credits > 0:
                kind = BillingEventKind.TOPUP
            else:
                kind = BillingEventKind.INFORMATIONAL
            return cls(
                kind=kind,
                subscription_id=_ref(_field(obj, "subscription")),
                status="active" if kind is BillingEventKind.ACTIVATED else None,
                tier=_parse_tier(_field(metadata, "tier")),
                checkout_mode=mode,
                payment_ref=_ref(_field(obj, "payment_intent")) or _field(obj, "id"),
                credits=credits,
                **common,
            )

        if event_type.startswith("customer.subscription."):
            kind = {
                "customer.subscription.created": BillingEventKind.UPDATED,
                "customer.subscription.updated": BillingEventKind.UPDATED,
                "customer.subscription.deleted": BillingEventKind.DELETED,
            }.get(event_type, BillingEventKind.UNKNOWN)
            return cls(
                kind=kind,
                subscription_id=_field(obj, "id"),
                status=_field(obj, "status"),
                tier=_parse_tier(_field(metadata, "tier")) or _tier_from_prices(obj, price_mapping),
                period_end=_subscription_period_end(obj),
                **common,
            )

        if event_type.startswith("invoice."):
            kind = {
                "invoice.payment_failed": BillingEventKind.PAYMENT_FAILED,
                "invoice.payment_succeeded": BillingEventKind.PAYMENT_SUCCEEDED,
                "invoice.paid": BillingEventKind.PAYMENT_SUCCEEDED,
            }.get(event_type, BillingEventKind.UNKNOWN)
            subscription_ref = _field(obj, "subscription") or _field(
                _field(_field(obj, "parent"), "subscription_details"), "subscription"
            )
            return cls(kind=kind, subscription_id=_ref(subscription_ref), **common)

        return cls(kind=BillingEventKind.UNKNOWN, **common)


# ---------------------------------------------------------------------------
# AccountState
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountState:
    """Billing-relevant slice of an Account."""

    tier: AccountTier
    status: SubscriptionStatus
    balance: int
    used_this_period: int = 0
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    period_end: Optional[datetime] = None

    @classmethod
    def from_model(cls, account: Any) -> "AccountState":
        """Snapshot an Account row."""
        return cls(
            tier=AccountTier(account.tier),
            status=SubscriptionStatus(account.subscription_status),
            balance=account.balance,
            used_this_period=account.used_this_period,
            stripe_customer_id=account.stripe_customer_id,
            stripe_subscription_id=account.stripe_subscription_id,
            period_end=account.period_end,
        )

    def apply_to(self, account: Any) -> None:
        """Write this state onto an Account row (caller holds the lock)."""
        account.tier = self.tier.value
        account.subscription_status = self.status.value
        account.balance = self.balance
        account.used_this_period = self.used_this_period
        account.stripe_customer_id = self.stripe_customer_id
        account.stripe_subscription_id = self.stripe_subscription_id
        account.period_end = self.period_end

    def evolve(self, **changes: Any) -> "AccountState":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# Pricing catalogue
# ---------------------------------------------------------------------------

PRICING_TIERS: tuple[PricingTier, ...] = (
    PricingTier(
        id="free",
        name="Free",
        price=0,
        features=[
            "3 designs per month",
            "Basic styles only",
            "Watermarked images",
            "720p resolution",
        ],
        design_limit=3,
        watermark=True,
        tier=AccountTier.FREE,
    ),
    PricingTier(
        id="basic",
        name="Basic",
        price=19,
        features=[
            "Unlimited designs",
            "All styles (10+)",
            "No watermark",
            "1080p resolution",
            "Download in PNG/JPG",
            "Shopping integration",
        ],
        design_limit=None,
        watermark=False,
        tier=AccountTier.BASIC,
    ),
    PricingTier(
        id="professional",
        name="Professional",
        price=99,
        features=[
            "All Basic features",
            "HD 4K renders",
            "Client project management",
            "White-label option",
            "Commercial license",
            "Priority AI queue",
            "API access",
        ],
        design_limit=None,
        watermark=False,
        tier=AccountTier.PROFESSIONAL,
    ),
)
