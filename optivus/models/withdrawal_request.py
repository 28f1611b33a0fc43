"""
WithdrawalRequest model.

Admin review queue for withdrawals; the funds are already debited.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from optivus.models.base import Base
from optivus.models.enums import WithdrawalStatus
from optivus.models.types import MoneyType


class WithdrawalRequest(Base):
    """Withdrawal request awaiting or past admin resolution."""

    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint('amount > 0', name='check_withdrawal_amount_positive'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    network: Mapped[str | None] = mapped_column(String(20), nullable=True)

    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="RESTRICT"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=WithdrawalStatus.PENDING.value, nullable=False,
        index=True
    )

    resolved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def is_resolved(self) -> bool:
        return self.status != WithdrawalStatus.PENDING.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WithdrawalRequest(id={self.id}, account_id={self.account_id}, "
            f"amount={self.amount}, method={self.method}, status={self.status})>"
        )
