"""API tests for balance and ledger history endpoints."""

import pytest

from aify.core.shared_models import AccountTier


@pytest.mark.asyncio
async def test_balance(client):
    response = await client.get("/credits/balance")

    assert response.status_code == 200
    assert response.json() == {"balance": 3, "used_this_period": 0, "unlimited": False}


@pytest.mark.asyncio
async def test_balance_paid_tier_is_unlimited(client, api_account):
    api_account.tier = AccountTier.PROFESSIONAL.value

    response = await client.get("/credits/balance")

    assert response.json()["unlimited"] is True


@pytest.mark.asyncio
async def test_history_newest_first(client, test_container, api_account, fake_db):
    ledger = test_container.credit_ledger
    await ledger.debit(fake_db, api_account.id, 1, "Modern Kitchen design generation")
    await ledger.credit(fake_db, api_account.id, 1, "Refund for failed design generation")

    response = await client.get("/credits/history")

    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [e["kind"] for e in entries] == ["credit", "debit"]
    assert [e["balance_after"] for e in entries] == [3, 2]


@pytest.mark.asyncio
async def test_history_respects_limit(client, test_container, api_account, fake_db):
    for _ in range(3):
        await test_container.credit_ledger.debit(fake_db, api_account.id, 1, "generation")

    response = await client.get("/credits/history", params={"limit": 2})

    assert len(response.json()["entries"]) == 2


@pytest.mark.asyncio
async def test_history_rejects_non_positive_limit(client):
    response = await client.get("/credits/history", params={"limit": 0})

    assert response.status_code == 422
