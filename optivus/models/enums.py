"""
Enumerations used by models and services.

Values are stored as plain strings in the database.
"""

from enum import StrEnum


class AccountRole(StrEnum):
    """Account role."""

    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"  # protocol treasury


class AccountStatus(StrEnum):
    """Account lifecycle status."""

    INACTIVE = "inactive"  # registered, entry fee not yet confirmed
    ACTIVE = "active"
    FROZEN = "frozen"


class WithdrawalGate(StrEnum):
    """Per-account withdrawal gate."""

    ACTIVE = "active"
    PAUSED = "paused"


class KycStatus(StrEnum):
    """KYC verification status."""

    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class LedgerEntryKind(StrEnum):
    """Kind of balance-affecting event."""

    COMMISSION = "Commission"
    BONUS = "Bonus"
    FEE = "Fee"
    WITHDRAWAL = "Withdrawal"
    ADJUSTMENT = "Adjustment"
    REVERSAL = "Reversal"


class LedgerEntryStatus(StrEnum):
    """Settlement status of a ledger entry."""

    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class WithdrawalMethod(StrEnum):
    """Withdrawal destination method."""

    CRYPTO = "crypto"
    STRIPE = "stripe"
    PAYPAL = "paypal"

    @property
    def is_fiat(self) -> bool:
        """Fiat methods are bank-linked and require verified KYC."""
        return self is not WithdrawalMethod.CRYPTO


class WithdrawalStatus(StrEnum):
    """Withdrawal request status."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class PaymentEventStatus(StrEnum):
    """Distribution progress of an entry-fee payment event."""

    PROCESSING = "processing"
    DISTRIBUTED = "distributed"
    PARTIAL = "partial"


class AdminActionType(StrEnum):
    """Audited admin mutations."""

    ADJUST_BALANCE = "adjust_balance"
    GRANT_BONUS = "grant_bonus"
    SET_ACCOUNT_STATUS = "set_account_status"
    SET_WITHDRAWAL_STATUS = "set_withdrawal_status"
    SET_PLATFORM_WITHDRAWALS = "set_platform_withdrawals"
    APPROVE_WITHDRAWAL = "approve_withdrawal"
    DENY_WITHDRAWAL = "deny_withdrawal"
    APPROVE_KYC = "approve_kyc"
    REJECT_KYC = "reject_kyc"
