"""
Login credentials: password change, password reset and e-mail verification.

Reset tokens and verification codes are e-mailed by the notification
collaborator; only their bcrypt hashes are stored, with an expiry.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from optivus.config.constants import EMAIL_CODE_LENGTH, RESET_TOKEN_BYTES
from optivus.config.settings import settings
from optivus.repositories.account_repository import AccountRepository
from optivus.utils.datetime_utils import ensure_utc, utc_now
from optivus.utils.exceptions import (
    EmailAlreadyVerified,
    InvalidCredentials,
    InvalidVerificationCode,
    WeakPassword,
)
from optivus.utils.security import (
    generate_numeric_code,
    hash_secret,
    mask_email,
    verify_secret,
)
from optivus.utils.validation import validate_email, validate_password

if TYPE_CHECKING:
    from optivus.services.base_service import BaseService


@dataclass
class PasswordResetIssued:
    """Reset token to be e-mailed as a link."""

    account_id: int
    email: str
    token: str
    expires_at: datetime
    notify: str = "If an account exists, a reset link has been sent."


@dataclass
class EmailVerificationIssued:
    """Verification code to be e-mailed."""

    account_id: int
    email: str
    code: str
    expires_at: datetime
    notify: str = "Verification email sent."


def _is_unexpired(expires_at: datetime | None) -> bool:
    expires_at = ensure_utc(expires_at)
    return expires_at is not None and expires_at >= utc_now()


def _split_reset_token(token: str | None) -> tuple[int, str] | None:
    """Reset tokens look like ``<account id>.<secret>``."""
    if not token or "." not in token:
        return None
    account_part, secret = token.split(".", 1)
    if not account_part.isdigit() or not secret:
        return None
    return int(account_part), secret


class CredentialsMixin:
    """Mixin for password and e-mail ownership management."""

    account_repo: AccountRepository
    account_transaction: "BaseService.account_transaction"

    async def change_password(
        self, account_id: int, current_password: str, new_password: str
    ) -> None:
        """
        Change the login password.

        Any outstanding reset token is cancelled.

        Raises:
            WeakPassword: New password rejected
            InvalidCredentials: Current password wrong
        """
        is_valid, _, error = validate_password(new_password)
        if not is_valid:
            raise WeakPassword(error)

        async with self.account_transaction(account_id) as account:
            if not account.verify_password(current_password):
                raise InvalidCredentials("Current password is incorrect")
            account.set_password(new_password)
            account.password_reset_hash = None
            account.password_reset_expires_at = None

        logger.info("Password changed", extra={"account_id": account_id})

    async def request_password_reset(self, email: str) -> PasswordResetIssued | None:
        """
        Issue a password reset token.

        Unknown addresses get no token, but callers show the same notice
        either way so the response does not reveal which e-mails exist.

        Args:
            email: Account e-mail

        Returns:
            PasswordResetIssued, or None when no account matches
        """
        is_valid, email, _ = validate_email(email)
        account = await self.account_repo.get_by_email(email) if is_valid else None
        if account is None or account.is_treasury:
            logger.info(
                "Password reset requested for unknown e-mail",
                extra={"email": mask_email(email)},
            )
            return None

        account_id = account.id
        secret = secrets.token_urlsafe(RESET_TOKEN_BYTES)
        expires_at = utc_now() + timedelta(minutes=settings.password_reset_ttl_minutes)

        async with self.account_transaction(account_id) as account:
            account.password_reset_hash = hash_secret(secret)
            account.password_reset_expires_at = expires_at

        logger.info("Password reset issued", extra={"account_id": account_id})
        return PasswordResetIssued(
            account_id=account_id,
            email=email,
            token=f"{account_id}.{secret}",
            expires_at=expires_at,
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password with a reset token; the token is single-use.

        Raises:
            WeakPassword: New password rejected
            InvalidVerificationCode: Token malformed, wrong, used or expired
        """
        is_valid, _, error = validate_password(new_password)
        if not is_valid:
            raise WeakPassword(error)

        parsed = _split_reset_token(token)
        if parsed is None:
            raise InvalidVerificationCode("Invalid or expired reset link")
        account_id, secret = parsed
        if await self.account_repo.get_by_id(account_id) is None:
            raise InvalidVerificationCode("Invalid or expired reset link")

        async with self.account_transaction(account_id) as account:
            if not _is_unexpired(account.password_reset_expires_at) or not verify_secret(
                secret, account.password_reset_hash
            ):
                raise InvalidVerificationCode(
                    "Invalid or expired reset link", account_id=account_id
                )
            account.set_password(new_password)
            account.password_reset_hash = None
            account.password_reset_expires_at = None

        logger.info("Password reset completed", extra={"account_id": account_id})

    async def request_email_verification(self, account_id: int) -> EmailVerificationIssued:
        """
        Issue a code proving ownership of the account e-mail.

        Raises:
            EmailAlreadyVerified: Nothing to verify
        """
        code = generate_numeric_code(EMAIL_CODE_LENGTH)
        expires_at = utc_now() + timedelta(
            minutes=settings.email_verification_ttl_minutes
        )

        async with self.account_transaction(account_id) as account:
            if account.email_verified:
                raise EmailAlreadyVerified(account_id=account_id)
            account.email_code_hash = hash_secret(code)
            account.email_code_expires_at = expires_at
            email = account.email

        logger.info("E-mail verification issued", extra={"account_id": account_id})
        return EmailVerificationIssued(
            account_id=account_id, email=email, code=code, expires_at=expires_at
        )

    async def verify_email(self, account_id: int, code: str) -> None:
        """
        Mark the e-mail verified.

        Raises:
            EmailAlreadyVerified: Already verified
            InvalidVerificationCode: Code wrong, missing or expired
        """
        async with self.account_transaction(account_id) as account:
            if account.email_verified:
                raise EmailAlreadyVerified(account_id=account_id)
            if not _is_unexpired(account.email_code_expires_at) or not verify_secret(
                code, account.email_code_hash
            ):
                raise InvalidVerificationCode(account_id=account_id)
            account.email_verified = True
            account.email_code_hash = None
            account.email_code_expires_at = None

        logger.info("E-mail verified", extra={"account_id": account_id})
