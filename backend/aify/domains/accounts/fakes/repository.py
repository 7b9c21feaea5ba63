"""Fake account repository for testing."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from aify.domains.accounts.exceptions import AccountNotFoundError, ConcurrencyConflictError
from aify.models import Account
from aify.schemas.account import AccountCreate

_SNAPSHOT_FIELDS = (
    "email",
    "display_name",
    "tier",
    "subscription_status",
    "balance",
    "used_this_period",
    "last_rollover_at",
    "stripe_customer_id",
    "stripe_subscription_id",
    "period_end",
    "last_billing_event_at",
)


class FakeAccountRepository:
    """In-memory fake for AccountRepositoryProtocol.

    ``locked`` serializes on a per-account ``asyncio.Lock`` and restores the
    row to its pre-lock values when the block raises, mirroring a rollback.
    Set ``fail_next_lock`` to make the next ``locked`` call raise
    ``ConcurrencyConflictError`` as if the database lock timed out.
    """

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[UUID, Account] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._calls: list[tuple] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_next_lock = False

    def seed(self, account: Account) -> Account:
        """Populate store with test data."""
        self._store[account.id] = account
        return account

    def call_count(self, method: str) -> int:
        """Return how many times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    def _get_lock(self, account_id: UUID) -> asyncio.Lock:
        if account_id not in self._locks:
            self._locks[account_id] = asyncio.Lock()
        return self._locks[account_id]

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Get account by ID."""
        self._calls.append(("get", db, account_id))
        return self._store.get(account_id)

    async def get_by_external_id(self, db: AsyncSession, *, external_id: str) -> Optional[Account]:
        """Get account by identity-provider subject."""
        self._calls.append(("get_by_external_id", db, external_id))
        for obj in self._store.values():
            if obj.external_id == external_id:
                return obj
        return None

    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[Account]:
        """Get account by Stripe customer ID."""
        self._calls.append(("get_by_stripe_customer_id", db, stripe_customer_id))
        for obj in self._store.values():
            if obj.stripe_customer_id == stripe_customer_id:
                return obj
        return None

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Account]:
        """Get account by Stripe subscription ID."""
        self._calls.append(("get_by_stripe_subscription_id", db, stripe_subscription_id))
        for obj in self._store.values():
            if obj.stripe_subscription_id == stripe_subscription_id:
                return obj
        return None

    async def create(self, db: AsyncSession, *, obj_in: AccountCreate) -> Account:
        """Create an account (fake)."""
        self._calls.append(("create", db, obj_in))
        data = obj_in.model_dump()
        data["tier"] = obj_in.tier.value
        data["subscription_status"] = obj_in.subscription_status.value
        account = Account(id=uuid4(), **data)
        self._store[account.id] = account
        return account

    @asynccontextmanager
    async def locked(self, db: AsyncSession, account_id: UUID) -> AsyncIterator[Account]:
        """Serialize on the account and restore it if the block raises."""
        self._calls.append(("locked", db, account_id))
        if self.fail_next_lock:
            self.fail_next_lock = False
            raise ConcurrencyConflictError(account_id)

        async with self._get_lock(account_id):
            account = self._store.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_id)

            snapshot = {field: getattr(account, field) for field in _SNAPSHOT_FIELDS}
            try:
                yield account
            except Exception:
                for field, value in snapshot.items():
                    setattr(account, field, value)
                self.rollbacks += 1
                raise
            self.commits += 1
