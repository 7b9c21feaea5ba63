"""Account model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from aify.core.shared_models import AccountTier, SubscriptionStatus
from aify.models._base import Base


class Account(Base):
    """One spendable-credit account per end user.

    ``balance``, ``tier`` and ``subscription_status`` are written only by the
    ledger service and the subscription reconciler, both under the row lock
    taken by ``AccountRepository.locked``.
    """

    __tablename__ = "account"

    external_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    tier: Mapped[str] = mapped_column(String(50), default=AccountTier.FREE.value, nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        String(50), default=SubscriptionStatus.INACTIVE.value, nullable=False
    )

    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    used_this_period: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_rollover_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_billing_event_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
        CheckConstraint("used_this_period >= 0", name="ck_account_used_non_negative"),
        Index("idx_account_stripe_customer_id", "stripe_customer_id"),
        Index("idx_account_stripe_subscription_id", "stripe_subscription_id"),
    )
