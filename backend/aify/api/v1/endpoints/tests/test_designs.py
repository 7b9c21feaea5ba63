"""API tests for design generation: charge, refund and error mapping."""

import pytest

from aify.adapters.generation.fake import FAKE_IMAGE_B64
from aify.core.exceptions import ExternalServiceError
from aify.core.shared_models import AccountTier, LedgerEntryKind

PAYLOAD = {"original_image": "aGVsbG8=", "style": "Modern", "room_type": "Kitchen"}


@pytest.mark.asyncio
async def test_generate_charges_one_credit(client, api_account):
    response = await client.post("/designs/generate", json=PAYLOAD)

    assert response.status_code == 201
    body = response.json()
    assert body["image_b64"] == FAKE_IMAGE_B64
    assert body["has_watermark"] is True
    assert body["credits_remaining"] == 2
    assert api_account.balance == 2


@pytest.mark.asyncio
async def test_generate_paid_tier_not_charged(client, api_account, fake_image_generator):
    api_account.tier = AccountTier.BASIC.value

    response = await client.post("/designs/generate", json=PAYLOAD)

    assert response.status_code == 201
    assert response.json()["has_watermark"] is False
    assert api_account.balance == 3
    assert fake_image_generator.calls[0].hd is True


@pytest.mark.asyncio
async def test_generate_without_credits_returns_402(client, api_account, fake_image_generator):
    api_account.balance = 0

    response = await client.post("/designs/generate", json=PAYLOAD)

    assert response.status_code == 402
    body = response.json()
    assert body["current_balance"] == 0
    assert body["required"] == 1
    assert body["upgrade_url"] == "/pricing"
    assert fake_image_generator.calls == []


@pytest.mark.asyncio
async def test_provider_failure_returns_502_and_refunds(
    client, api_account, fake_image_generator, fake_entry_repo
):
    fake_image_generator.should_raise = ExternalServiceError("OpenAI", "timed out")

    response = await client.post("/designs/generate", json=PAYLOAD)

    assert response.status_code == 502
    body = response.json()
    assert body["refunded"] is True
    assert "refunded" in body["detail"]
    assert api_account.balance == 3
    kinds = [e.kind for e in fake_entry_repo.entries_for(api_account.id)]
    assert kinds == [LedgerEntryKind.DEBIT.value, LedgerEntryKind.CREDIT.value]


@pytest.mark.asyncio
async def test_lock_conflict_returns_503_with_retry_after(
    client, api_account, fake_account_repo, fake_image_generator
):
    fake_account_repo.fail_next_lock = True

    response = await client.post("/designs/generate", json=PAYLOAD)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert api_account.balance == 3
    assert fake_image_generator.calls == []


@pytest.mark.asyncio
async def test_missing_style_returns_422(client):
    response = await client.post(
        "/designs/generate", json={"original_image": "aGVsbG8=", "room_type": "Kitchen"}
    )

    assert response.status_code == 422
    assert "errors" in response.json()
