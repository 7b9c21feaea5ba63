"""Ledger schema module."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from aify.core.shared_models import LedgerEntryKind


class LedgerEntry(BaseModel):
    """A single balance-affecting audit entry."""

    id: UUID
    account_id: UUID
    kind: LedgerEntryKind
    delta: int
    balance_after: int
    reason: str
    related_resource_ref: Optional[str] = None
    external_payment_ref: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    """Current balance of the calling account."""

    balance: int
    used_this_period: int
    unlimited: bool


class CreditHistoryResponse(BaseModel):
    """Newest-first ledger history."""

    entries: list[LedgerEntry]
