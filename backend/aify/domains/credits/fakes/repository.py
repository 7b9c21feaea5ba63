"""Fake ledger entry repository for testing."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from aify.models import LedgerEntry


class FakeLedgerEntryRepository:
    """In-memory fake for LedgerEntryRepositoryProtocol.

    Entries get a strictly increasing ``created_at`` so newest-first ordering
    is deterministic even when several are added within the same instant.
    """

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: list[LedgerEntry] = []
        self._calls: list[tuple] = []
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def seed(self, entry: LedgerEntry) -> None:
        """Populate store with test data."""
        self._store.append(entry)

    def call_count(self, method: str) -> int:
        """Return how many times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    def entries_for(self, account_id: UUID) -> list[LedgerEntry]:
        """All entries of an account in insertion order."""
        return [e for e in self._store if e.account_id == account_id]

    async def add(self, db: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        """Append an entry."""
        self._calls.append(("add", db, entry))
        if entry.id is None:
            entry.id = uuid4()
        if entry.created_at is None:
            self._clock += timedelta(microseconds=1)
            entry.created_at = self._clock
        self._store.append(entry)
        return entry

    async def list_for_account(
        self, db: AsyncSession, *, account_id: UUID, limit: int = 50
    ) -> list[LedgerEntry]:
        """Newest-first entries for an account."""
        self._calls.append(("list_for_account", db, account_id, limit))
        return list(reversed(self.entries_for(account_id)))[:limit]

    async def get_by_external_payment_ref(
        self, db: AsyncSession, *, external_payment_ref: str
    ) -> Optional[LedgerEntry]:
        """Find the entry that recorded an external payment, if any."""
        self._calls.append(("get_by_external_payment_ref", db, external_payment_ref))
        for entry in self._store:
            if entry.external_payment_ref == external_payment_ref:
                return entry
        return None

    async def get_by_related_resource_ref(
        self, db: AsyncSession, *, account_id: UUID, kind: str, related_resource_ref: str
    ) -> Optional[LedgerEntry]:
        """Find an entry of ``kind`` already recorded for a resource, if any."""
        self._calls.append(
            ("get_by_related_resource_ref", db, account_id, kind, related_resource_ref)
        )
        for entry in self.entries_for(account_id):
            if entry.kind == kind and entry.related_resource_ref == related_resource_ref:
                return entry
        return None
