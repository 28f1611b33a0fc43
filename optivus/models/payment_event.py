"""
PaymentEvent model.

Records each confirmed entry-fee payment so that replays are rejected.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from optivus.models.base import Base
from optivus.models.enums import PaymentEventStatus
from optivus.models.types import MoneyType


class PaymentEvent(Base):
    """Confirmed entry-fee payment."""

    __tablename__ = "payment_events"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    payment_event_id: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    fee_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=PaymentEventStatus.PROCESSING.value,
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PaymentEvent(payment_event_id={self.payment_event_id!r}, "
            f"account_id={self.account_id}, status={self.status})>"
        )
