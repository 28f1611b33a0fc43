"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from optivus.models.account import Account
from optivus.models.admin_action import AdminAction
from optivus.models.base import Base
from optivus.models.enums import (
    AccountRole,
    AccountStatus,
    AdminActionType,
    KycStatus,
    LedgerEntryKind,
    LedgerEntryStatus,
    PaymentEventStatus,
    WithdrawalGate,
    WithdrawalMethod,
    WithdrawalStatus,
)
from optivus.models.kyc_submission import KycSubmission
from optivus.models.ledger_entry import LedgerEntry
from optivus.models.payment_event import PaymentEvent
from optivus.models.platform_setting import PlatformSetting
from optivus.models.withdrawal_request import WithdrawalRequest

__all__ = [
    "Account",
    "AccountRole",
    "AccountStatus",
    "AdminAction",
    "AdminActionType",
    "Base",
    "KycStatus",
    "KycSubmission",
    "LedgerEntry",
    "LedgerEntryKind",
    "LedgerEntryStatus",
    "PaymentEvent",
    "PaymentEventStatus",
    "PlatformSetting",
    "WithdrawalGate",
    "WithdrawalMethod",
    "WithdrawalRequest",
    "WithdrawalStatus",
]
