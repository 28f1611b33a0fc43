"""
AdminAction model.

Audit trail of admin mutations.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from optivus.models.base import Base


class AdminAction(Base):
    """Single audited admin action."""

    __tablename__ = "admin_actions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    admin_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_account_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AdminAction(id={self.id}, admin_id={self.admin_id}, "
            f"action_type={self.action_type})>"
        )
