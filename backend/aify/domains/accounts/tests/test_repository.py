"""Tests for AccountRepository.locked error translation and FakeAccountRepository."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from aify.domains.accounts.exceptions import AccountNotFoundError, ConcurrencyConflictError
from aify.domains.accounts.repository import AccountRepository, is_retryable_db_error
from aify.domains.accounts.tests.conftest import _result
from aify.models import Account


class _PgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


def _account(**overrides) -> Account:
    defaults = dict(
        id=uuid4(),
        external_id="auth0|abc",
        email="user@example.com",
        tier="free",
        subscription_status="inactive",
        balance=3,
        used_this_period=0,
    )
    defaults.update(overrides)
    return Account(**defaults)


# ---------------------------------------------------------------------------
# is_retryable_db_error
# ---------------------------------------------------------------------------


class TestRetryableErrors:
    @pytest.mark.parametrize("sqlstate", ["55P03", "40001", "40P01"])
    def test_lock_and_serialization_states_are_retryable(self, sqlstate):
        exc = DBAPIError("SELECT 1", {}, _PgError(sqlstate))
        assert is_retryable_db_error(exc)

    def test_operational_error_is_retryable(self):
        exc = OperationalError("SELECT 1", {}, Exception("connection reset"))
        assert is_retryable_db_error(exc)

    def test_integrity_error_is_not_retryable(self):
        exc = IntegrityError("INSERT", {}, _PgError("23505"))
        assert not is_retryable_db_error(exc)


# ---------------------------------------------------------------------------
# AccountRepository.locked
# ---------------------------------------------------------------------------


class TestLocked:
    @pytest.mark.asyncio
    async def test_commits_on_clean_exit(self):
        account = _account()
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(account)])
        repo = AccountRepository(lock_timeout_ms=250)

        async with repo.locked(db, account.id) as locked:
            locked.balance = 2

        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()
        set_local = str(db.execute.await_args_list[0].args[0])
        assert "lock_timeout = '250ms'" in set_local

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises_on_error(self):
        account = _account()
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(account)])
        repo = AccountRepository()

        with pytest.raises(RuntimeError):
            async with repo.locked(db, account.id):
                raise RuntimeError("boom")

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_row_raises_not_found(self):
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(None)])
        repo = AccountRepository()

        with pytest.raises(AccountNotFoundError):
            async with repo.locked(db, uuid4()):
                pass

        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lock_timeout_becomes_concurrency_conflict(self):
        db = AsyncMock()
        db.execute = AsyncMock(
            side_effect=[MagicMock(), DBAPIError("SELECT", {}, _PgError("55P03"))]
        )
        repo = AccountRepository()

        with pytest.raises(ConcurrencyConflictError):
            async with repo.locked(db, uuid4()):
                pass

        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_serialization_failure_becomes_concurrency_conflict(self):
        account = _account()
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(account)])
        db.commit = AsyncMock(side_effect=DBAPIError("COMMIT", {}, _PgError("40001")))
        repo = AccountRepository()

        with pytest.raises(ConcurrencyConflictError):
            async with repo.locked(db, account.id):
                pass

        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_integrity_error_propagates_unchanged(self):
        account = _account()
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(account)])
        repo = AccountRepository()

        with pytest.raises(IntegrityError):
            async with repo.locked(db, account.id):
                raise IntegrityError("INSERT", {}, _PgError("23505"))


# ---------------------------------------------------------------------------
# FakeAccountRepository
# ---------------------------------------------------------------------------


class TestFakeAccountRepository:
    @pytest.mark.asyncio
    async def test_restores_snapshot_on_exception(self, account_repo, db):
        account = account_repo.seed(_account(balance=3, tier="free"))

        with pytest.raises(ValueError):
            async with account_repo.locked(db, account.id) as locked:
                locked.balance = 0
                locked.tier = "basic"
                raise ValueError("abort")

        assert account.balance == 3
        assert account.tier == "free"
        assert account_repo.rollbacks == 1
        assert account_repo.commits == 0

    @pytest.mark.asyncio
    async def test_serializes_same_account(self, account_repo, db):
        account = account_repo.seed(_account(balance=0))
        order: list[str] = []

        async def _hold(label: str) -> None:
            async with account_repo.locked(db, account.id) as locked:
                order.append(f"{label}-in")
                await asyncio.sleep(0)
                locked.balance += 1
                order.append(f"{label}-out")

        await asyncio.gather(_hold("a"), _hold("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]
        assert account.balance == 2

    @pytest.mark.asyncio
    async def test_lookup_by_stripe_ids(self, account_repo, db):
        account = account_repo.seed(
            _account(stripe_customer_id="cus_1", stripe_subscription_id="sub_1")
        )

        assert await account_repo.get_by_stripe_customer_id(db, stripe_customer_id="cus_1") is account
        assert (
            await account_repo.get_by_stripe_subscription_id(db, stripe_subscription_id="sub_1")
            is account
        )
        assert await account_repo.get_by_external_id(db, external_id="nope") is None
