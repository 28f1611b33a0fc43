"""
KycSubmission model.

At most one queued submission per account; resubmission replaces it.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from optivus.models.base import Base

if TYPE_CHECKING:
    from optivus.models.account import Account


class KycSubmission(Base):
    """Pending KYC submission awaiting admin review."""

    __tablename__ = "kyc_submissions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    document_url: Mapped[str] = mapped_column(String(500), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="kyc_submission", lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<KycSubmission(id={self.id}, account_id={self.account_id}, "
            f"country={self.country!r})>"
        )
