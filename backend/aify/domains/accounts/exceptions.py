"""Accounts domain exceptions."""

from typing import Optional
from uuid import UUID

from aify.core.exceptions import ConcurrencyException, NotFoundException


class AccountNotFoundError(NotFoundException):
    """Raised when an account row does not exist."""

    def __init__(self, account_id: Optional[UUID] = None, message: Optional[str] = None):
        """Initialize with the missing account id."""
        self.account_id = account_id
        if message is None:
            message = f"Account {account_id} not found" if account_id else "Account not found"
        super().__init__(message)


class ConcurrencyConflictError(ConcurrencyException):
    """Raised when the account lock could not be taken or the transaction aborted.

    Nothing was applied. The whole operation can be retried from scratch.
    """

    def __init__(self, account_id: Optional[UUID] = None, message: Optional[str] = None):
        """Initialize with the contended account id."""
        self.account_id = account_id
        if message is None:
            message = "Account is busy, please retry"
        super().__init__(message)
