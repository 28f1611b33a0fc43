"""
Account registration and activation.

Registration creates an inactive account that remembers the sponsor's
referral code. Activation (on confirmed entry-fee payment) makes the
sponsor link permanent and mints the account's own referral code.
"""

import secrets
import string
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.constants import (
    REFERRAL_CODE_MAX_ATTEMPTS,
    REFERRAL_CODE_SUFFIX_LENGTH,
)
from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import AccountRole, AccountStatus
from optivus.repositories.account_repository import AccountRepository
from optivus.services.base_service import transaction
from optivus.services.referral.graph import ReferralGraph
from optivus.utils.datetime_utils import utc_now
from optivus.utils.exceptions import (
    AlreadyActivated,
    EmailTaken,
    InvalidEmail,
    InvalidUsername,
    UsernameTaken,
    WeakPassword,
)
from optivus.utils.security import mask_email
from optivus.utils.validation import (
    sanitize_input,
    validate_email,
    validate_password,
    validate_username,
)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class RegistrationDetails:
    """Signup form."""

    first_name: str
    last_name: str
    username: str
    email: str
    password: str
    referral_code: str


class AccountRegistrationMixin:
    """
    Mixin for account registration functionality.

    Handles signup, bootstrap accounts and activation.
    """

    session: AsyncSession
    account_repo: AccountRepository
    graph: ReferralGraph

    @transaction
    async def register(self, details: RegistrationDetails) -> Account:
        """
        Register new inactive account.

        Args:
            details: Signup form

        Returns:
            Created account (status inactive until the entry fee is paid)

        Raises:
            InvalidEmail, InvalidUsername, WeakPassword: Bad input
            UsernameTaken, EmailTaken: Duplicate identity
            InvalidReferralCode: Code does not belong to an active account
        """
        username, email = await self._validate_identity(
            details.username, details.email, details.password
        )
        sponsor = await self.graph.resolve_referral_code(details.referral_code)

        account = Account(
            first_name=sanitize_input(details.first_name, 100),
            last_name=sanitize_input(details.last_name, 100),
            username=username,
            email=email,
            role=AccountRole.USER.value,
            status=AccountStatus.INACTIVE.value,
            pending_sponsor_code=sponsor.referral_code,
        )
        account.set_password(details.password)
        self.session.add(account)
        await self.session.flush()

        logger.info(
            "Account registered",
            extra={
                "account_id": account.id,
                "username": username,
                "email": mask_email(email),
                "sponsor_id": sponsor.id,
            },
        )
        return account

    async def is_username_available(self, username: str) -> bool:
        """Check whether a username can still be registered."""
        is_valid, username, _ = validate_username(username)
        if not is_valid:
            return False
        return await self.account_repo.get_by_username(username) is None

    @transaction
    async def bootstrap_root(
        self,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        referral_code: str | None = None,
    ) -> Account:
        """
        Create the root (master) account of the referral forest.

        Idempotent: returns the existing account owning the root code.

        Returns:
            Active account without sponsor
        """
        code = (referral_code or settings.root_referral_code).strip().upper()
        existing = await self.account_repo.get_by_referral_code(code)
        if existing is not None:
            return existing

        username, email = await self._validate_identity(username, email, password)
        account = Account(
            first_name=first_name,
            last_name=last_name,
            username=username,
            email=email,
            role=AccountRole.USER.value,
            status=AccountStatus.ACTIVE.value,
            referral_code=code,
            activated_at=utc_now(),
        )
        account.set_password(password)
        self.session.add(account)
        await self.session.flush()

        logger.info(
            "Root account created",
            extra={"account_id": account.id, "referral_code": code},
        )
        return account

    @transaction
    async def create_admin(
        self, first_name: str, last_name: str, username: str, email: str, password: str
    ) -> Account:
        """Create active admin account (outside the referral forest)."""
        username, email = await self._validate_identity(username, email, password)
        account = Account(
            first_name=first_name,
            last_name=last_name,
            username=username,
            email=email,
            role=AccountRole.ADMIN.value,
            status=AccountStatus.ACTIVE.value,
            activated_at=utc_now(),
        )
        account.set_password(password)
        self.session.add(account)
        await self.session.flush()

        logger.info("Admin account created", extra={"account_id": account.id})
        return account

    async def activate(self, account: Account) -> Account:
        """
        Activate a paid account inside the caller's transaction.

        The account row must already be locked.

        Raises:
            AlreadyActivated: Account is not awaiting activation
            InvalidReferralCode: Sponsor is no longer active
            SponsorAlreadySet: Sponsor link already exists
        """
        # A referral code, once issued, never changes
        if (
            account.status != AccountStatus.INACTIVE.value
            or account.referral_code is not None
            or account.activated_at is not None
        ):
            raise AlreadyActivated(account_id=account.id, status=account.status)

        if account.pending_sponsor_code:
            await self.graph.link_sponsor(account, account.pending_sponsor_code)

        account.referral_code = await self._mint_referral_code(account.username)
        account.status = AccountStatus.ACTIVE.value
        account.activated_at = utc_now()
        await self.session.flush()

        logger.info(
            "Account activated",
            extra={
                "account_id": account.id,
                "sponsor_id": account.sponsor_id,
                "referral_code": account.referral_code,
            },
        )
        return account

    async def _validate_identity(
        self, username: str, email: str, password: str
    ) -> tuple[str, str]:
        is_valid, clean_username, error = validate_username(username)
        if not is_valid:
            raise InvalidUsername(error)
        is_valid, clean_email, error = validate_email(email)
        if not is_valid:
            raise InvalidEmail(error)
        is_valid, _, error = validate_password(password)
        if not is_valid:
            raise WeakPassword(error)

        if await self.account_repo.get_by_username(clean_username) is not None:
            raise UsernameTaken(username=clean_username)
        if await self.account_repo.get_by_email(clean_email) is not None:
            raise EmailTaken()
        return clean_username, clean_email

    async def _mint_referral_code(self, username: str) -> str:
        """Generate unique referral code: USERNAME + random suffix."""
        prefix = username.upper()[:12]
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            suffix = "".join(
                secrets.choice(_CODE_ALPHABET)
                for _ in range(REFERRAL_CODE_SUFFIX_LENGTH)
            )
            code = f"{prefix}{suffix}"
            if not await self.account_repo.exists(referral_code=code):
                return code
        raise RuntimeError("Could not generate a unique referral code")
