"""API test fixtures.

Provides an async HTTP client wired to the FastAPI app with the DI container
overridden to use fakes. Available to all colocated API tests under api/.

Pattern:
    1. Override get_container -> returns test_container (fakes at the edges)
    2. Override get_context  -> returns an ApiContext for a seeded account
    3. Override get_db       -> returns an AsyncMock session
    4. Test hits the endpoint, asserts on HTTP response + fake state
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from aify.api.context import ApiContext
from aify.api.deps import get_container, get_context
from aify.core.logging import logger
from aify.core.shared_models import AccountTier, AuthMethod, SubscriptionStatus
from aify.db.session import get_db
from aify.models import Account
from aify.schemas.account import Principal

TEST_ACCOUNT_ID = UUID("00000000-0000-0000-0000-0000000000a1")
TEST_REQUEST_ID = "test-request-00000000"


def make_account(**overrides) -> Account:
    """Build a free-tier account row for API tests."""
    defaults = dict(
        id=TEST_ACCOUNT_ID,
        external_id="auth0|api-test",
        email="api@example.com",
        tier=AccountTier.FREE.value,
        subscription_status=SubscriptionStatus.INACTIVE.value,
        balance=3,
        used_this_period=0,
        last_rollover_at=datetime.now(timezone.utc),
    )
    defaults.update(overrides)
    return Account(**defaults)


@pytest.fixture
def api_account(test_container):
    """The caller's account, seeded into the fake repository."""
    return test_container.account_repo.seed(make_account())


@pytest.fixture
def fake_db():
    return AsyncMock()


@pytest_asyncio.fixture
async def client(test_container, api_account, fake_db):
    """Async HTTP client with faked DI container and auth context."""
    from aify.main import app

    fake_ctx = ApiContext(
        account=api_account,
        principal=Principal(external_id=api_account.external_id, email=api_account.email),
        logger=logger.with_context(request_id=TEST_REQUEST_ID),
        request_id=TEST_REQUEST_ID,
        auth_method=AuthMethod.SYSTEM,
        auth_metadata={"test": True},
    )

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_context] = lambda: fake_ctx
    app.dependency_overrides[get_db] = lambda: fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def context_client(test_container, fake_db):
    """Client that resolves the caller through the real get_context.

    Auth is disabled in tests, so every request runs as the local principal.
    """
    from aify.main import app

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_db] = lambda: fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
