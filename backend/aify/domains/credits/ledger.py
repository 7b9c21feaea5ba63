"""Credit ledger: the single writer of account balances.

Every mutation runs inside ``AccountRepository.locked``: the balance is read,
checked and written under the account's row lock, and the matching ledger
entry is appended in the same transaction. Nothing in here makes network
calls, so the lock is only ever held for a few statements.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import logger
from aify.core.protocols import BillingMetrics
from aify.core.shared_models import AccountTier, LedgerEntryKind
from aify.domains.accounts.exceptions import AccountNotFoundError
from aify.domains.accounts.repository import AccountRepositoryProtocol
from aify.domains.credits.exceptions import InsufficientBalanceError, InvalidAmountError
from aify.domains.credits.protocols import CreditLedgerProtocol
from aify.domains.credits.repository import LedgerEntryRepositoryProtocol
from aify.models import Account, LedgerEntry


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)


def rollover_due(account: Account, now: datetime, period_days: int) -> bool:
    """Whether a free-tier account's credit period has elapsed."""
    if account.tier != AccountTier.FREE.value:
        return False
    if account.last_rollover_at is None:
        return True
    last = account.last_rollover_at
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return now - last >= timedelta(days=period_days)


def make_entry(
    account: Account,
    kind: LedgerEntryKind,
    delta: int,
    reason: str,
    related_resource_ref: Optional[str] = None,
    external_payment_ref: Optional[str] = None,
) -> LedgerEntry:
    """Build the audit entry for a mutation already applied to ``account``."""
    return LedgerEntry(
        id=uuid4(),
        account_id=account.id,
        kind=kind.value,
        delta=delta,
        balance_after=account.balance,
        reason=reason,
        related_resource_ref=related_resource_ref,
        external_payment_ref=external_payment_ref,
    )


class CreditLedger(CreditLedgerProtocol):
    """Ledger service backed by the account row lock."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        entry_repo: LedgerEntryRepositoryProtocol,
        metrics: BillingMetrics,
        free_tier_grant: int = 3,
        period_days: int = 30,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize with repository dependencies and free-tier policy."""
        self._account_repo = account_repo
        self._entry_repo = entry_repo
        self._metrics = metrics
        self._free_tier_grant = free_tier_grant
        self._period_days = period_days
        self._clock = clock

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def debit(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        related_resource_ref: Optional[str] = None,
    ) -> LedgerEntry:
        """Subtract ``amount`` or raise InsufficientBalanceError with nothing written."""
        _require_positive(amount)
        log = logger.with_context(account_id=str(account_id))

        try:
            async with self._account_repo.locked(db, account_id) as account:
                if account.balance < amount:
                    raise InsufficientBalanceError(balance=account.balance, required=amount)
                account.balance -= amount
                account.used_this_period += amount
                entry = await self._entry_repo.add(
                    db,
                    entry=make_entry(
                        account, LedgerEntryKind.DEBIT, -amount, reason, related_resource_ref
                    ),
                )
        except InsufficientBalanceError as e:
            self._metrics.inc_insufficient_balance()
            log.info(f"Debit of {amount} rejected, balance is {e.balance}")
            raise

        self._metrics.inc_ledger_operation(LedgerEntryKind.DEBIT.value)
        log.info(f"Debited {amount} credit(s), balance now {entry.balance_after}: {reason}")
        return entry

    async def credit(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        related_resource_ref: Optional[str] = None,
    ) -> LedgerEntry:
        """Add ``amount``. The caller owns deduplication."""
        _require_positive(amount)

        async with self._account_repo.locked(db, account_id) as account:
            account.balance += amount
            account.used_this_period = max(0, account.used_this_period - amount)
            entry = await self._entry_repo.add(
                db,
                entry=make_entry(
                    account, LedgerEntryKind.CREDIT, amount, reason, related_resource_ref
                ),
            )

        self._metrics.inc_ledger_operation(LedgerEntryKind.CREDIT.value)
        logger.with_context(account_id=str(account_id)).info(
            f"Credited {amount} credit(s), balance now {entry.balance_after}: {reason}"
        )
        return entry

    async def top_up(
        self,
        db: AsyncSession,
        account_id: UUID,
        amount: int,
        reason: str,
        external_payment_ref: str,
    ) -> LedgerEntry:
        """Add purchased credits once per ``external_payment_ref``.

        A repeated call with the same reference returns the original entry
        and leaves the balance untouched.
        """
        _require_positive(amount)
        log = logger.with_context(
            account_id=str(account_id), external_payment_ref=external_payment_ref
        )

        try:
            async with self._account_repo.locked(db, account_id) as account:
                existing = await self._entry_repo.get_by_external_payment_ref(
                    db, external_payment_ref=external_payment_ref
                )
                if existing is not None:
                    log.info("Top-up already recorded, skipping")
                    return existing
                account.balance += amount
                entry = await self._entry_repo.add(
                    db,
                    entry=make_entry(
                        account,
                        LedgerEntryKind.EXTERNAL_TOPUP,
                        amount,
                        reason,
                        external_payment_ref=external_payment_ref,
                    ),
                )
        except IntegrityError:
            # Unique external_payment_ref: a concurrent delivery won.
            existing = await self._entry_repo.get_by_external_payment_ref(
                db, external_payment_ref=external_payment_ref
            )
            if existing is None:
                raise
            log.info("Top-up recorded concurrently, skipping")
            return existing

        self._metrics.inc_ledger_operation(LedgerEntryKind.EXTERNAL_TOPUP.value)
        log.info(f"Topped up {amount} credit(s), balance now {entry.balance_after}")
        return entry

    async def rollover_if_due(
        self,
        db: AsyncSession,
        account_id: UUID,
        period_length_days: Optional[int] = None,
        grant_amount: Optional[int] = None,
    ) -> Optional[LedgerEntry]:
        """Reset a free-tier balance to the grant once per elapsed period.

        The due check is repeated under the lock, so two callers racing
        across the boundary produce exactly one grant.
        """
        period_days = self._period_days if period_length_days is None else period_length_days
        grant = self._free_tier_grant if grant_amount is None else grant_amount

        current = await self._account_repo.get(db, account_id=account_id)
        if current is None:
            raise AccountNotFoundError(account_id)
        if not rollover_due(current, self._clock(), period_days):
            return None

        async with self._account_repo.locked(db, account_id) as account:
            now = self._clock()
            if not rollover_due(account, now, period_days):
                return None
            delta = grant - account.balance
            account.balance = grant
            account.used_this_period = 0
            account.last_rollover_at = now
            entry = await self._entry_repo.add(
                db,
                entry=make_entry(
                    account,
                    LedgerEntryKind.ROLLOVER_GRANT,
                    delta,
                    f"Free tier credit rollover ({grant} credits)",
                ),
            )

        self._metrics.inc_ledger_operation(LedgerEntryKind.ROLLOVER_GRANT.value)
        logger.with_context(account_id=str(account_id)).info(
            f"Free tier rollover applied, balance reset to {grant}"
        )
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, db: AsyncSession, account_id: UUID) -> int:
        """Unlocked read. Never use it to authorize a spend; call ``debit``."""
        account = await self._account_repo.get(db, account_id=account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account.balance

    async def history(
        self, db: AsyncSession, account_id: UUID, limit: int = 50
    ) -> list[LedgerEntry]:
        """Newest-first ledger entries."""
        return await self._entry_repo.list_for_account(db, account_id=account_id, limit=limit)
