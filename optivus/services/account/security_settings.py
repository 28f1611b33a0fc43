"""
Security settings: withdrawal PIN and two-factor authentication.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from optivus.config.constants import PIN_CODE_LENGTH
from optivus.config.settings import settings
from optivus.utils.datetime_utils import ensure_utc, utc_now
from optivus.utils.exceptions import (
    InvalidPinFormat,
    InvalidTwoFactorToken,
    InvalidVerificationCode,
    TwoFactorNotPending,
)
from optivus.utils.security import (
    generate_numeric_code,
    hash_secret,
    verify_secret,
)
from optivus.utils.totp import generate_secret, provisioning_uri, verify_token
from optivus.utils.validation import validate_pin

if TYPE_CHECKING:
    from optivus.services.base_service import BaseService


@dataclass
class PinCodeIssued:
    """Verification code to be e-mailed by the notification collaborator."""

    account_id: int
    email: str
    code: str
    expires_at: datetime
    notify: str = "A verification code has been sent to your email."


@dataclass
class TwoFactorEnrolment:
    """Secret and otpauth URI for the authenticator app."""

    secret: str
    provisioning_uri: str


class SecuritySettingsMixin:
    """Mixin for withdrawal PIN and 2FA management."""

    account_transaction: "BaseService.account_transaction"

    async def request_pin_code(self, account_id: int) -> PinCodeIssued:
        """
        Issue a one-time code that authorizes setting the withdrawal PIN.

        Only the bcrypt hash of the code is stored.

        Args:
            account_id: Account ID

        Returns:
            PinCodeIssued for the e-mail collaborator
        """
        code = generate_numeric_code(PIN_CODE_LENGTH)
        expires_at = utc_now() + timedelta(minutes=settings.pin_code_ttl_minutes)

        async with self.account_transaction(account_id) as account:
            account.pin_code_hash = hash_secret(code)
            account.pin_code_expires_at = expires_at
            email = account.email

        logger.info("PIN setup code issued", extra={"account_id": account_id})
        return PinCodeIssued(
            account_id=account_id, email=email, code=code, expires_at=expires_at
        )

    async def set_withdrawal_pin(self, account_id: int, code: str, pin: str) -> None:
        """
        Set (or replace) the withdrawal PIN.

        Args:
            account_id: Account ID
            code: Code from request_pin_code
            pin: New PIN (4-6 digits)

        Raises:
            InvalidPinFormat: PIN is not 4-6 digits
            InvalidVerificationCode: Code wrong, missing or expired
        """
        is_valid, pin, error = validate_pin(pin)
        if not is_valid:
            raise InvalidPinFormat(error)

        async with self.account_transaction(account_id) as account:
            expires_at = ensure_utc(account.pin_code_expires_at)
            if (
                expires_at is None
                or expires_at < utc_now()
                or not verify_secret(code, account.pin_code_hash)
            ):
                raise InvalidVerificationCode(account_id=account_id)

            account.set_withdrawal_pin(pin)
            account.pin_code_hash = None
            account.pin_code_expires_at = None

        logger.info("Withdrawal PIN set", extra={"account_id": account_id})

    async def begin_two_factor_enrolment(self, account_id: int) -> TwoFactorEnrolment:
        """
        Generate a TOTP secret awaiting confirmation.

        2FA stays disabled until confirm_two_factor succeeds.
        """
        secret = generate_secret()
        async with self.account_transaction(account_id) as account:
            if account.is_2fa_enabled:
                raise TwoFactorNotPending(
                    "Two-factor authentication is already enabled",
                    account_id=account_id,
                )
            account.two_factor_secret = secret
            uri = provisioning_uri(secret, account.email)

        logger.info("2FA enrolment started", extra={"account_id": account_id})
        return TwoFactorEnrolment(secret=secret, provisioning_uri=uri)

    async def confirm_two_factor(self, account_id: int, token: str) -> None:
        """
        Enable 2FA after the first valid token.

        Raises:
            TwoFactorNotPending: No enrolment in progress
            InvalidTwoFactorToken: Token does not verify
        """
        async with self.account_transaction(account_id) as account:
            if account.is_2fa_enabled or not account.two_factor_secret:
                raise TwoFactorNotPending(account_id=account_id)
            if not verify_token(account.two_factor_secret, token):
                raise InvalidTwoFactorToken(account_id=account_id)
            account.is_2fa_enabled = True

        logger.info("2FA enabled", extra={"account_id": account_id})

    async def disable_two_factor(self, account_id: int, token: str) -> None:
        """
        Disable 2FA; requires a valid current token.

        Raises:
            TwoFactorNotPending: 2FA is not enabled
            InvalidTwoFactorToken: Token does not verify
        """
        async with self.account_transaction(account_id) as account:
            if not account.is_2fa_enabled:
                raise TwoFactorNotPending(
                    "Two-factor authentication is not enabled",
                    account_id=account_id,
                )
            if not verify_token(account.two_factor_secret, token):
                raise InvalidTwoFactorToken(account_id=account_id)
            account.is_2fa_enabled = False
            account.two_factor_secret = None

        logger.info("2FA disabled", extra={"account_id": account_id})
