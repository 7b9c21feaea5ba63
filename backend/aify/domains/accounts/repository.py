"""Account repository and protocol.

``locked`` is the single serialization point for every write to an
account's balance, tier or subscription status. Both the credit ledger and
the subscription reconciler go through it, so a debit and a tier reset for
the same account can never interleave.
"""

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Optional, Protocol
from uuid import UUID, uuid4

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import logger
from aify.domains.accounts.exceptions import AccountNotFoundError, ConcurrencyConflictError
from aify.models import Account
from aify.schemas.account import AccountCreate

# lock_not_available, serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"55P03", "40001", "40P01"})


def is_retryable_db_error(exc: DBAPIError) -> bool:
    """Whether a driver error means "lost a race / try again" rather than a bug."""
    if isinstance(exc, OperationalError) or exc.connection_invalidated:
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in _RETRYABLE_SQLSTATES


class AccountRepositoryProtocol(Protocol):
    """Account reads plus the exclusive per-account lock."""

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Unlocked read by primary key."""
        ...

    async def get_by_external_id(self, db: AsyncSession, *, external_id: str) -> Optional[Account]:
        """Unlocked read by identity-provider subject."""
        ...

    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[Account]:
        """Unlocked read by Stripe customer ID."""
        ...

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Account]:
        """Unlocked read by Stripe subscription ID."""
        ...

    async def create(self, db: AsyncSession, *, obj_in: AccountCreate) -> Account:
        """Insert a new account (flushed, not committed)."""
        ...

    def locked(self, db: AsyncSession, account_id: UUID) -> AbstractAsyncContextManager[Account]:
        """Hold an exclusive lock on the account for the duration of the block.

        Commits on clean exit, rolls back on any exception.

        Raises:
            AccountNotFoundError: the account does not exist.
            ConcurrencyConflictError: the lock timed out or the transaction aborted.
        """
        ...


class AccountRepository(AccountRepositoryProtocol):
    """Postgres implementation using SELECT ... FOR UPDATE."""

    def __init__(self, lock_timeout_ms: int = 5000) -> None:
        """Initialize with the Postgres lock_timeout applied to each lock."""
        self._lock_timeout_ms = int(lock_timeout_ms)

    async def get(self, db: AsyncSession, *, account_id: UUID) -> Optional[Account]:
        """Unlocked read by primary key."""
        result = await db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def get_by_external_id(self, db: AsyncSession, *, external_id: str) -> Optional[Account]:
        """Unlocked read by identity-provider subject."""
        result = await db.execute(select(Account).where(Account.external_id == external_id))
        return result.scalar_one_or_none()

    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[Account]:
        """Unlocked read by Stripe customer ID."""
        result = await db.execute(
            select(Account).where(Account.stripe_customer_id == stripe_customer_id).limit(1)
        )
        return result.scalars().first()

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Account]:
        """Unlocked read by Stripe subscription ID."""
        result = await db.execute(
            select(Account).where(Account.stripe_subscription_id == stripe_subscription_id).limit(1)
        )
        return result.scalars().first()

    async def create(self, db: AsyncSession, *, obj_in: AccountCreate) -> Account:
        """Insert a new account (flushed, not committed)."""
        account = Account(id=uuid4(), **obj_in.model_dump(mode="python"))
        account.tier = obj_in.tier.value
        account.subscription_status = obj_in.subscription_status.value
        db.add(account)
        await db.flush()
        return account

    @asynccontextmanager
    async def locked(self, db: AsyncSession, account_id: UUID) -> AsyncIterator[Account]:
        """Hold ``FOR UPDATE`` on the account row for the duration of the block."""
        try:
            # SET LOCAL does not take bind parameters; the value is an int.
            await db.execute(text(f"SET LOCAL lock_timeout = '{self._lock_timeout_ms}ms'"))
            result = await db.execute(
                select(Account)
                .where(Account.id == account_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            account = result.scalar_one_or_none()
        except DBAPIError as e:
            await db.rollback()
            if is_retryable_db_error(e):
                logger.warning(f"Could not lock account {account_id}: {e.__class__.__name__}")
                raise ConcurrencyConflictError(account_id) from e
            raise

        if account is None:
            await db.rollback()
            raise AccountNotFoundError(account_id)

        try:
            yield account
            await db.commit()
        except DBAPIError as e:
            await db.rollback()
            if is_retryable_db_error(e):
                raise ConcurrencyConflictError(account_id) from e
            raise
        except Exception:
            await db.rollback()
            raise
