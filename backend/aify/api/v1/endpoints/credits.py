"""API endpoints for reading credit balances and ledger history."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aify import schemas
from aify.api import deps
from aify.api.context import ApiContext
from aify.api.deps import Inject
from aify.core.shared_models import AccountTier
from aify.domains.credits.protocols import CreditLedgerProtocol

router = APIRouter()


@router.get("/balance", response_model=schemas.BalanceResponse)
async def get_balance(
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    ledger: CreditLedgerProtocol = Inject(CreditLedgerProtocol),
) -> schemas.BalanceResponse:
    """Current balance of the calling account.

    Display only: spends are authorized by the debit itself, never by this read.
    """
    balance = await ledger.get_balance(db, ctx.account.id)
    return schemas.BalanceResponse(
        balance=balance,
        used_this_period=ctx.account.used_this_period,
        unlimited=AccountTier(ctx.account.tier).is_paid,
    )


@router.get("/history", response_model=schemas.CreditHistoryResponse)
async def get_history(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    ledger: CreditLedgerProtocol = Inject(CreditLedgerProtocol),
) -> schemas.CreditHistoryResponse:
    """Newest-first ledger entries of the calling account."""
    entries = await ledger.history(db, ctx.account.id, limit=limit)
    return schemas.CreditHistoryResponse(
        entries=[schemas.LedgerEntry.model_validate(entry) for entry in entries]
    )
