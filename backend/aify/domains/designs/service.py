"""Design generation orchestration.

Debit first, call the provider with no lock held, refund on failure. The
refund is a second ledger entry, so the audit trail keeps both the attempt
and its reversal.
"""

import asyncio
from typing import Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from aify.core.logging import ContextualLogger, logger
from aify.core.protocols import ImageGenerator
from aify.core.shared_models import AccountTier
from aify.domains.accounts.exceptions import ConcurrencyConflictError
from aify.domains.credits.protocols import CreditLedgerProtocol
from aify.domains.designs.exceptions import GenerationFailedError
from aify.domains.designs.protocols import DesignGenerationServiceProtocol
from aify.models import Account
from aify.schemas.design import DesignGenerateRequest, DesignGenerateResponse, GenerationRequest

REFUND_ATTEMPTS = 3


class DesignGenerationService(DesignGenerationServiceProtocol):
    """Generates room redesigns, charging free-tier accounts per generation."""

    def __init__(
        self,
        ledger: CreditLedgerProtocol,
        generator: ImageGenerator,
        generation_cost: int = 1,
        refund_backoff_seconds: float = 0.2,
    ) -> None:
        """Initialize with the ledger, the provider and the per-generation cost."""
        self._ledger = ledger
        self._generator = generator
        self._generation_cost = generation_cost
        self._refund_backoff_seconds = refund_backoff_seconds

    async def generate(
        self, db: AsyncSession, account: Account, request: DesignGenerateRequest
    ) -> DesignGenerateResponse:
        """Charge, render and return a redesign."""
        generation_id = uuid4().hex
        is_paid = AccountTier(account.tier).is_paid
        log = logger.with_context(account_id=str(account.id), generation_id=generation_id)

        credits_remaining: Optional[int] = None
        if not is_paid:
            entry = await self._ledger.debit(
                db,
                account.id,
                self._generation_cost,
                f"{request.style} {request.room_type} design generation",
                related_resource_ref=generation_id,
            )
            credits_remaining = entry.balance_after

        provider_request = GenerationRequest(
            generation_id=generation_id,
            original_image=request.original_image,
            style=request.style,
            room_type=request.room_type,
            custom_prompt=request.custom_prompt,
            hd=is_paid,
        )

        try:
            image = await self._generator.generate(provider_request)
        except asyncio.CancelledError:
            if not is_paid:
                log.warning("Generation cancelled after debit, refunding")
                await asyncio.shield(self._refund(db, account, generation_id, log))
            raise
        except Exception as e:
            log.error(f"Design generation failed: {e}")
            refunded = True
            if not is_paid:
                refunded = await self._refund(db, account, generation_id, log)
            raise GenerationFailedError(generation_id, refunded=refunded) from e

        log.info(f"Generated {request.style} {request.room_type} design")
        return DesignGenerateResponse(
            generation_id=generation_id,
            image_b64=image.image_b64,
            style=request.style,
            room_type=request.room_type,
            has_watermark=not is_paid,
            credits_remaining=credits_remaining,
        )

    async def _refund(
        self, db: AsyncSession, account: Account, generation_id: str, log: ContextualLogger
    ) -> bool:
        """Credit back the generation cost, retrying lock conflicts."""
        for attempt in range(1, REFUND_ATTEMPTS + 1):
            try:
                await self._ledger.credit(
                    db,
                    account.id,
                    self._generation_cost,
                    f"Refund for failed design generation (ID: {generation_id})",
                    related_resource_ref=generation_id,
                )
                return True
            except ConcurrencyConflictError:
                log.warning(f"Refund attempt {attempt}/{REFUND_ATTEMPTS} hit a lock conflict")
                if attempt < REFUND_ATTEMPTS:
                    await asyncio.sleep(self._refund_backoff_seconds * attempt)

        log.error(f"Refund for generation {generation_id} could not be written")
        return False
