"""Account schema module."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from aify.core.shared_models import AccountTier, SubscriptionStatus


class Principal(BaseModel):
    """Verified identity handed over by the identity provider."""

    external_id: str
    email: str
    display_name: Optional[str] = None


class AccountCreate(BaseModel):
    """Schema for provisioning an Account."""

    external_id: str
    email: str
    display_name: Optional[str] = None
    tier: AccountTier = AccountTier.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.INACTIVE
    balance: int = 0
    used_this_period: int = 0
    last_rollover_at: Optional[datetime] = None


class Account(BaseModel):
    """Account as returned to its owner."""

    id: UUID
    external_id: str
    email: str
    display_name: Optional[str] = None
    tier: AccountTier
    subscription_status: SubscriptionStatus
    balance: int
    used_this_period: int
    last_rollover_at: Optional[datetime] = None
    period_end: Optional[datetime] = None
    has_unlimited_generations: bool = False

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, account: object) -> "Account":
        """Build the response from an ORM row."""
        schema = cls.model_validate(account)
        schema.has_unlimited_generations = schema.tier.is_paid
        return schema
