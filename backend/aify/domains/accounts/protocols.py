"""Protocols for the accounts domain."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from aify.domains.accounts.repository import AccountRepositoryProtocol
from aify.models import Account
from aify.schemas.account import Principal

__all__ = ["AccountProvisionerProtocol", "AccountRepositoryProtocol"]


class AccountProvisionerProtocol(Protocol):
    """Resolves a verified principal to its account, creating it on first contact."""

    async def get_or_create(self, db: AsyncSession, principal: Principal) -> Account:
        """Return the principal's account, provisioning it with the free-tier grant if new."""
        ...
