"""Accounts domain test fixtures and helpers."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from aify.domains.accounts.fakes.repository import FakeAccountRepository
from aify.domains.credits.fakes.repository import FakeLedgerEntryRepository

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _result(value):
    """Mimic a SQLAlchemy Result whose scalar_one_or_none() returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def account_repo():
    return FakeAccountRepository()


@pytest.fixture
def entry_repo():
    return FakeLedgerEntryRepository()
