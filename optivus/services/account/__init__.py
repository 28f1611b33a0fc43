"""
Account service module.

Provides account management functionality including registration,
activation, authentication, security settings and payout bindings.

Structure:
- registration.py: Signup, bootstrap accounts and activation
- authentication.py: Login credential and 2FA checks
- security_settings.py: Withdrawal PIN and two-factor enrolment
- credentials.py: Password change and reset, e-mail verification
- payout.py: Payout destinations and profile updates

Usage:
    from optivus.services.account import AccountService

    account_service = AccountService(session)
    account = await account_service.register(details)
    issued = await account_service.request_pin_code(account.id)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.services.account.authentication import AccountAuthenticationMixin
from optivus.services.account.credentials import (
    CredentialsMixin,
    EmailVerificationIssued,
    PasswordResetIssued,
)
from optivus.services.account.payout import AccountPayoutMixin, PayoutBindings
from optivus.services.account.registration import (
    AccountRegistrationMixin,
    RegistrationDetails,
)
from optivus.services.account.security_settings import (
    PinCodeIssued,
    SecuritySettingsMixin,
    TwoFactorEnrolment,
)
from optivus.services.base_service import BaseService
from optivus.services.referral.graph import ReferralGraph


class AccountService(
    AccountRegistrationMixin,
    AccountAuthenticationMixin,
    CredentialsMixin,
    SecuritySettingsMixin,
    AccountPayoutMixin,
    BaseService,
):
    """
    Combined account service.

    Inherits from all account service mixins to provide complete functionality.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize account service with all mixins.

        Args:
            session: Database session
        """
        BaseService.__init__(self, session)
        self.graph = ReferralGraph(session)


__all__ = [
    "AccountService",
    "EmailVerificationIssued",
    "PasswordResetIssued",
    "PayoutBindings",
    "PinCodeIssued",
    "RegistrationDetails",
    "TwoFactorEnrolment",
]
