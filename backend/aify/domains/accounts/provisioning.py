"""Lazy account provisioning on first authenticated contact."""

from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import logger
from aify.core.shared_models import AccountTier, LedgerEntryKind, SubscriptionStatus
from aify.domains.accounts.protocols import AccountProvisionerProtocol
from aify.domains.accounts.repository import AccountRepositoryProtocol
from aify.domains.credits.ledger import make_entry
from aify.domains.credits.repository import LedgerEntryRepositoryProtocol
from aify.models import Account
from aify.schemas.account import AccountCreate, Principal


class AccountProvisioner(AccountProvisionerProtocol):
    """Creates a free-tier account with the starting grant the first time a principal is seen."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol,
        entry_repo: LedgerEntryRepositoryProtocol,
        starting_grant: int = 3,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """Initialize with repositories and the free-tier starting grant."""
        self._account_repo = account_repo
        self._entry_repo = entry_repo
        self._starting_grant = starting_grant
        self._clock = clock

    async def get_or_create(self, db: AsyncSession, principal: Principal) -> Account:
        """Return the principal's account, provisioning it if new.

        Two first requests racing on the unique ``external_id`` both try to
        insert; the loser rolls back and re-reads the winner's row.
        """
        existing = await self._account_repo.get_by_external_id(
            db, external_id=principal.external_id
        )
        if existing is not None:
            return existing

        log = logger.with_context(external_id=principal.external_id)
        try:
            account = await self._account_repo.create(
                db,
                obj_in=AccountCreate(
                    external_id=principal.external_id,
                    email=principal.email,
                    display_name=principal.display_name,
                    tier=AccountTier.FREE,
                    subscription_status=SubscriptionStatus.INACTIVE,
                    balance=self._starting_grant,
                    used_this_period=0,
                    last_rollover_at=self._clock(),
                ),
            )
            await self._entry_repo.add(
                db,
                entry=make_entry(
                    account,
                    LedgerEntryKind.ROLLOVER_GRANT,
                    self._starting_grant,
                    f"Welcome grant ({self._starting_grant} free credits)",
                ),
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            account = await self._account_repo.get_by_external_id(
                db, external_id=principal.external_id
            )
            if account is None:
                raise
            log.info("Account provisioned concurrently, using existing row")
            return account

        log.info(f"Provisioned account {account.id} with {self._starting_grant} credits")
        return account
