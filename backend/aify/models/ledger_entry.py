"""Ledger entry model."""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from aify.models._base import Base


class LedgerEntry(Base):
    """Append-only audit row, one per balance-affecting operation."""

    __tablename__ = "ledger_entry"

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("account.id", ondelete="RESTRICT", name="fk_ledger_entry_account_id"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    related_resource_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    external_payment_ref: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )

    __table_args__ = (
        Index("idx_ledger_entry_account_id_created_at", "account_id", "created_at"),
    )
