"""
Withdrawal services.

Request validation, balance reservation and admin resolution.
"""

from optivus.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
    WithdrawalResolution,
)
from optivus.services.withdrawal.withdrawal_request_handler import (
    WithdrawalReceipt,
    WithdrawalRequestHandler,
)
from optivus.services.withdrawal.withdrawal_validator_core import (
    ValidationResult,
    WithdrawalDraft,
    WithdrawalValidator,
)

__all__ = [
    "ValidationResult",
    "WithdrawalDraft",
    "WithdrawalLifecycleHandler",
    "WithdrawalReceipt",
    "WithdrawalRequestHandler",
    "WithdrawalResolution",
    "WithdrawalValidator",
]
