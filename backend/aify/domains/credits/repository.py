"""Ledger entry repository.

Append-only: there is no update or delete. Rows are only ever added inside
an ``AccountRepository.locked`` block, so they commit together with the
balance they describe.
"""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aify.models import LedgerEntry


class LedgerEntryRepositoryProtocol(Protocol):
    """Append and read ledger entries."""

    async def add(self, db: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        """Stage a new entry in the current transaction."""
        ...

    async def list_for_account(
        self, db: AsyncSession, *, account_id: UUID, limit: int = 50
    ) -> list[LedgerEntry]:
        """Newest-first entries for an account."""
        ...

    async def get_by_external_payment_ref(
        self, db: AsyncSession, *, external_payment_ref: str
    ) -> Optional[LedgerEntry]:
        """Find the entry that recorded an external payment, if any."""
        ...

    async def get_by_related_resource_ref(
        self, db: AsyncSession, *, account_id: UUID, kind: str, related_resource_ref: str
    ) -> Optional[LedgerEntry]:
        """Find an entry of ``kind`` already recorded for a resource, if any."""
        ...


class LedgerEntryRepository(LedgerEntryRepositoryProtocol):
    """SQLAlchemy implementation."""

    async def add(self, db: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        """Stage a new entry in the current transaction."""
        db.add(entry)
        await db.flush()
        return entry

    async def list_for_account(
        self, db: AsyncSession, *, account_id: UUID, limit: int = 50
    ) -> list[LedgerEntry]:
        """Newest-first entries for an account."""
        result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_external_payment_ref(
        self, db: AsyncSession, *, external_payment_ref: str
    ) -> Optional[LedgerEntry]:
        """Find the entry that recorded an external payment, if any."""
        result = await db.execute(
            select(LedgerEntry).where(LedgerEntry.external_payment_ref == external_payment_ref)
        )
        return result.scalar_one_or_none()

    async def get_by_related_resource_ref(
        self, db: AsyncSession, *, account_id: UUID, kind: str, related_resource_ref: str
    ) -> Optional[LedgerEntry]:
        """Find an entry of ``kind`` already recorded for a resource, if any."""
        result = await db.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.kind == kind,
                LedgerEntry.related_resource_ref == related_resource_ref,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
