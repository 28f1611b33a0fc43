"""
Account model.

Represents a platform member (or the protocol treasury) in the system.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from optivus.models.base import Base
from optivus.models.enums import (
    AccountRole,
    AccountStatus,
    KycStatus,
    WithdrawalGate,
)
from optivus.models.types import MoneyType
from optivus.utils.security import hash_secret, verify_secret

if TYPE_CHECKING:
    from optivus.models.kyc_submission import KycSubmission
    from optivus.models.ledger_entry import LedgerEntry


class Account(Base):
    """Account model - registered members, admins and the treasury."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            'balance >= 0', name='check_account_balance_non_negative'
        ),
        CheckConstraint(
            'sponsor_id IS NULL OR sponsor_id != id',
            name='check_account_not_self_sponsored'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20), default=AccountRole.USER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=AccountStatus.INACTIVE.value, nullable=False,
        index=True
    )

    # Balance (materialized from the ledger)
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Referral
    referral_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True, unique=True, index=True
    )
    pending_sponsor_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
        comment="Referral code captured at registration, applied on activation"
    )
    sponsor_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )

    # KYC
    kyc_status: Mapped[str] = mapped_column(
        String(20), default=KycStatus.UNVERIFIED.value, nullable=False,
        index=True
    )
    kyc_rejection_reason: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )

    # Withdrawal PIN (bcrypt hash)
    withdrawal_pin_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    pin_attempts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    pin_locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pin_code_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
        comment="Hash of the e-mailed code that authorizes setting a PIN"
    )
    pin_code_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # One-time credentials (bcrypt hashes)
    password_reset_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    password_reset_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    email_code_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    email_code_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Two-factor authentication (TOTP)
    two_factor_secret: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    is_2fa_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Payout bindings
    payout_connected: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    paypal_email: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    wallet_address: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    wallet_network: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )

    withdrawal_status: Mapped[str] = mapped_column(
        String(20), default=WithdrawalGate.ACTIVE.value, nullable=False
    )

    # Timestamps
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    sponsor: Mapped["Account | None"] = relationship(
        "Account", remote_side="Account.id", lazy="raise"
    )
    ledger_entries: Mapped[list["LedgerEntry"]] = relationship(
        "LedgerEntry",
        back_populates="account",
        foreign_keys="LedgerEntry.account_id",
        lazy="raise",
    )
    kyc_submission: Mapped["KycSubmission | None"] = relationship(
        "KycSubmission", back_populates="account", uselist=False, lazy="raise"
    )

    @property
    def full_name(self) -> str:
        """Display name."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE.value

    @property
    def is_treasury(self) -> bool:
        return self.role == AccountRole.SYSTEM.value

    @property
    def has_withdrawal_pin(self) -> bool:
        return self.withdrawal_pin_hash is not None

    @property
    def has_payout_destination(self) -> bool:
        """True once any payout destination is bound."""
        return bool(
            self.payout_connected or self.paypal_email or self.wallet_address
        )

    def set_password(self, password: str) -> None:
        """Hash and store the login password."""
        self.password_hash = hash_secret(password)

    def verify_password(self, password: str) -> bool:
        """Check the login password against the stored hash."""
        return verify_secret(password, self.password_hash)

    def set_withdrawal_pin(self, pin: str) -> None:
        """Hash and store the withdrawal PIN."""
        self.withdrawal_pin_hash = hash_secret(pin)
        self.pin_attempts = 0
        self.pin_locked_until = None

    def verify_withdrawal_pin(self, pin: str) -> bool:
        """Check a PIN against the stored hash."""
        return verify_secret(pin, self.withdrawal_pin_hash)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, username={self.username!r}, "
            f"status={self.status}, balance={self.balance})>"
        )
