"""Protocols for the designs domain."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from aify.models import Account
from aify.schemas.design import DesignGenerateRequest, DesignGenerateResponse


class DesignGenerationServiceProtocol(Protocol):
    """Charges for, renders and if needed refunds one design generation."""

    async def generate(
        self, db: AsyncSession, account: Account, request: DesignGenerateRequest
    ) -> DesignGenerateResponse:
        """Generate a redesign for ``account``.

        Raises:
            InsufficientBalanceError: free-tier account without credits, provider not called.
            GenerationFailedError: provider failed, debited credit refunded.
        """
        ...
