"""Tests for lazy account provisioning."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from aify.core.shared_models import AccountTier, LedgerEntryKind, SubscriptionStatus
from aify.domains.accounts.provisioning import AccountProvisioner
from aify.domains.accounts.tests.conftest import NOW
from aify.schemas.account import AccountCreate, Principal

PRINCIPAL = Principal(external_id="auth0|new-user", email="new@example.com", display_name="New")


@pytest.fixture
def provisioner(account_repo, entry_repo):
    return AccountProvisioner(account_repo, entry_repo, starting_grant=3, clock=lambda: NOW)


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_first_contact_creates_free_account_with_grant(
        self, provisioner, account_repo, entry_repo, db
    ):
        account = await provisioner.get_or_create(db, PRINCIPAL)

        assert account.external_id == "auth0|new-user"
        assert account.tier == AccountTier.FREE.value
        assert account.subscription_status == SubscriptionStatus.INACTIVE.value
        assert account.balance == 3
        assert account.used_this_period == 0
        assert account.last_rollover_at == NOW

        entries = entry_repo.entries_for(account.id)
        assert len(entries) == 1
        assert entries[0].kind == LedgerEntryKind.ROLLOVER_GRANT.value
        assert entries[0].delta == 3
        assert entries[0].balance_after == 3
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_contact_returns_existing(self, provisioner, account_repo, db):
        first = await provisioner.get_or_create(db, PRINCIPAL)
        second = await provisioner.get_or_create(db, PRINCIPAL)

        assert second is first
        assert account_repo.call_count("create") == 1

    @pytest.mark.asyncio
    async def test_race_on_unique_external_id_rereads_winner(
        self, provisioner, account_repo, db
    ):
        winner = await account_repo.create(
            db,
            obj_in=AccountCreate(
                external_id=PRINCIPAL.external_id, email=PRINCIPAL.email, balance=3
            ),
        )
        lookups = iter([None, winner])
        account_repo.get_by_external_id = AsyncMock(side_effect=lambda *a, **kw: next(lookups))
        account_repo.create = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception()))

        account = await provisioner.get_or_create(db, PRINCIPAL)

        assert account is winner
        db.rollback.assert_awaited_once()
