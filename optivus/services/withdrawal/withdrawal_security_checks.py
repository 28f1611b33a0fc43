"""
Withdrawal security checks module.

Contains security validation checks:
- Withdrawal PIN (with lockout after repeated failures)
- Two-factor token
"""

from loguru import logger

from optivus.models.account import Account
from optivus.utils.datetime_utils import ensure_utc, utc_now
from optivus.utils.exceptions import (
    InvalidPin,
    InvalidTwoFactorToken,
    NoWithdrawalPin,
    OptivusError,
    PinLocked,
)
from optivus.utils.totp import verify_token


class SecurityChecksMixin:
    """Mixin providing security validation checks."""

    def check_pin(
        self, account: Account, pin: str | None
    ) -> tuple[bool, OptivusError | None]:
        """
        Verify withdrawal PIN.

        An expired lockout is cleared here; the caller records failed
        attempts.

        Returns:
            Tuple of (is_valid, error)
        """
        if not account.has_withdrawal_pin:
            return False, NoWithdrawalPin(account_id=account.id)

        locked_until = ensure_utc(account.pin_locked_until)
        if locked_until is not None:
            if locked_until > utc_now():
                remaining = int((locked_until - utc_now()).total_seconds() // 60) + 1
                return False, PinLocked(
                    f"Too many failed PIN attempts. Try again in {remaining} min.",
                    retry_in_minutes=remaining,
                )
            # Lockout expired, reset attempts
            account.pin_attempts = 0
            account.pin_locked_until = None

        if not pin or not account.verify_withdrawal_pin(pin):
            logger.warning(f"Invalid withdrawal PIN for account {account.id}")
            return False, InvalidPin(account_id=account.id)

        return True, None

    def check_two_factor(
        self, account: Account, token: str | None
    ) -> tuple[bool, OptivusError | None]:
        """
        Verify 2FA token when two-factor authentication is enabled.

        Returns:
            Tuple of (is_valid, error)
        """
        if not account.is_2fa_enabled:
            return True, None
        if not verify_token(account.two_factor_secret, token):
            logger.warning(f"Invalid 2FA token for account {account.id}")
            return False, InvalidTwoFactorToken(account_id=account.id)
        return True, None
