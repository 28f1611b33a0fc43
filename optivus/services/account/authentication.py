"""
Account authentication functionality.

Checks login credentials and, when enabled, the two-factor token.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.account import Account
from optivus.repositories.account_repository import AccountRepository
from optivus.utils.exceptions import (
    InvalidCredentials,
    InvalidTwoFactorToken,
    TwoFactorRequired,
)
from optivus.utils.security import mask_email
from optivus.utils.totp import verify_token


class AccountAuthenticationMixin:
    """
    Mixin for account authentication functionality.

    Identity sessions are issued by an external collaborator; this only
    answers whether the credentials are right.
    """

    session: AsyncSession
    account_repo: AccountRepository

    async def authenticate(
        self, email: str, password: str, two_factor_token: str | None = None
    ) -> Account:
        """
        Verify login credentials.

        Args:
            email: Account e-mail
            password: Plain password
            two_factor_token: TOTP token, required when 2FA is enabled

        Returns:
            Authenticated account

        Raises:
            InvalidCredentials: Unknown e-mail or wrong password
            TwoFactorRequired: 2FA enabled and no token supplied
            InvalidTwoFactorToken: Token does not verify
        """
        account = await self.account_repo.get_by_email((email or "").strip())
        if account is None or account.is_treasury or not password:
            raise InvalidCredentials()

        if not account.verify_password(password):
            logger.warning(
                "Failed login attempt", extra={"email": mask_email(email)}
            )
            raise InvalidCredentials()

        if account.is_2fa_enabled:
            if not two_factor_token:
                raise TwoFactorRequired(account_id=account.id)
            if not verify_token(account.two_factor_secret, two_factor_token):
                raise InvalidTwoFactorToken(account_id=account.id)

        logger.info("Account authenticated", extra={"account_id": account.id})
        return account
