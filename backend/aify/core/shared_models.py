"""Shared models for the backend."""

from enum import Enum


class AccountTier(str, Enum):
    """Plan tier of an account. Free is the default and the fallback on cancellation."""

    FREE = "free"
    BASIC = "basic"
    INDIA = "india"
    PROFESSIONAL = "professional"

    @property
    def is_paid(self) -> bool:
        """Paid tiers have unlimited generations."""
        return self is not AccountTier.FREE


class SubscriptionStatus(str, Enum):
    """Subscription status enum."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class LedgerEntryKind(str, Enum):
    """Kind of a balance-affecting ledger entry."""

    DEBIT = "debit"
    CREDIT = "credit"
    ROLLOVER_GRANT = "rollover_grant"
    EXTERNAL_TOPUP = "external_topup"


class AuthMethod(str, Enum):
    """Authentication method enum."""

    AUTH0 = "auth0"
    SYSTEM = "system"
    STRIPE_WEBHOOK = "stripe_webhook"
