"""
LedgerEntry model.

Append-only record of every balance-affecting event.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from optivus.models.base import Base
from optivus.models.enums import LedgerEntryStatus
from optivus.models.types import MoneyType

if TYPE_CHECKING:
    from optivus.models.account import Account


class LedgerEntry(Base):
    """
    Ledger entry (transaction).

    Amount is signed: credits are positive, debits negative. Rows are never
    deleted; only a Pending withdrawal entry changes status, exactly once.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_account_created", "account_id", "created_at"),
        Index("ix_ledger_account_kind_reference", "account_id", "kind", "reference"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=LedgerEntryStatus.COMPLETED.value, nullable=False,
        index=True
    )
    description: Mapped[str] = mapped_column(
        String(500), default="", nullable=False
    )

    # Counterpart references
    reference: Mapped[str | None] = mapped_column(
        String(128), nullable=True,
        comment="External reference, e.g. the payment event id of a commission"
    )
    source_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    level: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Tier of a commission credit"
    )
    withdrawal_request_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="ledger_entries",
        foreign_keys=[account_id],
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(id={self.id}, account_id={self.account_id}, "
            f"kind={self.kind}, amount={self.amount}, status={self.status})>"
        )
