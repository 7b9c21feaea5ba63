"""Models for the application."""

from ._base import Base
from .account import Account
from .ledger_entry import LedgerEntry

__all__ = ["Account", "Base", "LedgerEntry"]
