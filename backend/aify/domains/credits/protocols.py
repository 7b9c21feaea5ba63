"""Protocols for the credits domain."""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from aify.models import LedgerEntry


class CreditLedgerProtocol(Protocol):
    """Atomic, audited balance mutations for one account at a time."""

    async def debit(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        related_resource_ref: Optional[str] = None,
    ) -> LedgerEntry:
        """Subtract credits or raise InsufficientBalanceError without mutating."""
        ...

    async def credit(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        related_resource_ref: Optional[str] = None,
    ) -> LedgerEntry:
        """Add credits (refunds). Performs no deduplication."""
        ...

    async def top_up(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        external_payment_ref: str,
    ) -> LedgerEntry:
        """Add purchased credits, idempotent on the external payment reference."""
        ...

    async def get_balance(self, db: AsyncSession, account_id: UUID) -> int:
        """Unlocked read of the current balance. Display only."""
        ...

    async def rollover_if_due(
        self,
        db: AsyncSession,
        account_id: UUID,
        period_length_days: Optional[int] = None,
        grant_amount: Optional[int] = None,
    ) -> Optional[LedgerEntry]:
        """Reset a free-tier balance to the grant when its period has elapsed."""
        ...

    async def history(
        self, db: AsyncSession, account_id: UUID, limit: int = 50
    ) -> list[LedgerEntry]:
        """Newest-first ledger entries."""
        ...
