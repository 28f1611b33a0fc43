"""
Withdrawal basic checks module.

Contains basic validation checks:
- Withdrawal gates (static kill switch, platform flag, account gate)
- Account status check
- Amount check
- Balance check
"""

from decimal import Decimal

from loguru import logger

from optivus.config.constants import PLATFORM_WITHDRAWALS_PAUSED
from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import AccountStatus, WithdrawalGate
from optivus.repositories.platform_setting_repository import (
    PlatformSettingRepository,
)
from optivus.utils.exceptions import (
    AccountFrozen,
    AccountNotActive,
    InsufficientBalance,
    InvalidAmount,
    OptivusError,
    WithdrawalsPaused,
)
from optivus.utils.money import format_money, parse_amount, to_money


class BasicChecksMixin:
    """Mixin providing basic validation checks."""

    settings_repo: PlatformSettingRepository

    async def check_withdrawals_paused(
        self, account: Account
    ) -> tuple[bool, OptivusError | None]:
        """
        Check platform-level and account-level withdrawal gates.

        Returns:
            Tuple of (is_valid, error)
        """
        # Check both static config flag and DB flag
        platform_paused = settings.emergency_stop_withdrawals or (
            await self.settings_repo.get_flag(PLATFORM_WITHDRAWALS_PAUSED)
        )
        if platform_paused:
            logger.warning("Withdrawal blocked: platform withdrawals paused")
            return False, WithdrawalsPaused(
                "Withdrawals are temporarily paused for all accounts",
                scope="platform",
            )

        if account.withdrawal_status == WithdrawalGate.PAUSED.value:
            logger.warning(
                f"Withdrawal blocked: account {account.id} has withdrawals paused"
            )
            return False, WithdrawalsPaused(
                "Withdrawals are paused for this account", scope="account"
            )

        return True, None

    def check_account_status(
        self, account: Account
    ) -> tuple[bool, OptivusError | None]:
        """
        Check that the account may move funds.

        Returns:
            Tuple of (is_valid, error)
        """
        if account.status == AccountStatus.FROZEN.value:
            logger.warning(f"Withdrawal blocked: account {account.id} is frozen")
            return False, AccountFrozen(account_id=account.id)
        if account.status != AccountStatus.ACTIVE.value:
            return False, AccountNotActive(account_id=account.id)
        return True, None

    def check_amount(
        self, raw_amount: Decimal | str
    ) -> tuple[Decimal | None, OptivusError | None]:
        """
        Parse amount and enforce the minimum.

        Returns:
            Tuple of (amount, error)
        """
        amount = parse_amount(raw_amount)
        if amount is None:
            return None, InvalidAmount(amount=str(raw_amount))

        min_amount = settings.min_withdrawal_amount
        if amount < min_amount:
            return None, InvalidAmount(
                f"Minimum withdrawal amount: "
                f"{format_money(min_amount, settings.currency_symbol)}",
                amount=str(amount),
            )
        return amount, None

    def check_balance(
        self, account: Account, amount: Decimal
    ) -> tuple[bool, OptivusError | None]:
        """
        Check if account has sufficient balance.

        Returns:
            Tuple of (is_valid, error)
        """
        balance = to_money(account.balance)
        if amount > balance:
            return False, InsufficientBalance(
                balance=str(balance), amount=str(amount)
            )
        return True, None
