"""
Withdrawal validation core module.

Contains the main validation logic and ValidationResult class.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.account import Account
from optivus.models.enums import WithdrawalMethod
from optivus.repositories.platform_setting_repository import (
    PlatformSettingRepository,
)
from optivus.services.withdrawal.withdrawal_basic_checks import (
    BasicChecksMixin,
)
from optivus.services.withdrawal.withdrawal_method_checks import (
    MethodChecksMixin,
)
from optivus.services.withdrawal.withdrawal_security_checks import (
    SecurityChecksMixin,
)
from optivus.utils.exceptions import OptivusError


@dataclass
class WithdrawalDraft:
    """Withdrawal request as submitted by the account holder."""

    account_id: int
    amount: Decimal | str
    method: WithdrawalMethod
    pin: str
    two_factor_token: str | None = None
    network: str | None = None
    address: str | None = None


@dataclass
class ValidationResult:
    """Result of withdrawal validation."""

    is_valid: bool
    error: OptivusError | None = None
    amount: Decimal | None = None
    destination: str | None = None
    network: str | None = None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None

    @classmethod
    def success(
        cls, amount: Decimal, destination: str, network: str | None
    ) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(
            is_valid=True, amount=amount, destination=destination, network=network
        )

    @classmethod
    def failure(cls, error: OptivusError) -> "ValidationResult":
        """Create an error validation result."""
        return cls(is_valid=False, error=error)


class WithdrawalValidator(
    BasicChecksMixin, SecurityChecksMixin, MethodChecksMixin
):
    """Validator for withdrawal requests."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal validator.

        Args:
            session: Database session
        """
        self.session = session
        self.settings_repo = PlatformSettingRepository(session)

    async def validate_withdrawal_request(
        self, account: Account, draft: WithdrawalDraft
    ) -> ValidationResult:
        """
        Run all validations in order and stop at the first failure.

        Args:
            account: Locked account row
            draft: Submitted request

        Returns:
            ValidationResult with the parsed amount and resolved destination,
            or the first failing named error
        """
        # 1. Platform and account withdrawal gates
        is_valid, error = await self.check_withdrawals_paused(account)
        if not is_valid:
            return ValidationResult.failure(error)

        # 2. Account status
        is_valid, error = self.check_account_status(account)
        if not is_valid:
            return ValidationResult.failure(error)

        # 3. Amount shape and minimum
        amount, error = self.check_amount(draft.amount)
        if error:
            return ValidationResult.failure(error)

        # 4. Withdrawal PIN
        is_valid, error = self.check_pin(account, draft.pin)
        if not is_valid:
            return ValidationResult.failure(error)

        # 5. Two-factor token
        is_valid, error = self.check_two_factor(account, draft.two_factor_token)
        if not is_valid:
            return ValidationResult.failure(error)

        # 6. Destination for the chosen method
        destination, error = self.resolve_destination(account, draft)
        if error:
            return ValidationResult.failure(error)

        # 7. KYC gates (fiat needs KYC, crypto capped without it)
        is_valid, error = self.check_kyc_limits(account, draft.method, amount)
        if not is_valid:
            return ValidationResult.failure(error)

        # 8. Balance
        is_valid, error = self.check_balance(account, amount)
        if not is_valid:
            return ValidationResult.failure(error)

        network, address = destination
        return ValidationResult.success(amount, address, network)
