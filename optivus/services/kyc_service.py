"""
KYC service.

Verification workflow: unverified -> pending -> verified | rejected, with
rejected -> pending on resubmission. One queued submission per account.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.constants import DEFAULT_KYC_REJECTION_REASON
from optivus.models.enums import KycStatus
from optivus.repositories.kyc_repository import KycRepository
from optivus.services.base_service import BaseService
from optivus.utils.exceptions import (
    KycAlreadyVerified,
    MissingDocument,
    PayoutMethodRequired,
    RequestNotFound,
    ValidationError,
)
from optivus.utils.validation import sanitize_input


@dataclass
class KycDetails:
    """Submitted verification details."""

    address: str
    city: str
    postal_code: str
    country: str
    document_url: str | None = None


@dataclass
class KycStatusView:
    """Verification state shown to the account holder."""

    status: str
    rejection_reason: str | None
    payout_connected: bool


@dataclass
class KycQueueItem:
    """Row of the admin KYC queue."""

    account_id: int
    account_name: str
    account_email: str
    submitted_at: datetime
    address: str
    city: str
    postal_code: str
    country: str
    document_url: str


@dataclass
class KycDecision:
    """Outcome of a KYC decision, with a notification hint."""

    account_id: int
    status: str
    rejection_reason: str | None
    notify: str


class KycService(BaseService):
    """KYC submission and review."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize KYC service."""
        super().__init__(session)
        self.kyc_repo = KycRepository(session)

    async def submit(self, account_id: int, details: KycDetails) -> KycStatusView:
        """
        Submit (or resubmit) verification details.

        Args:
            account_id: Submitting account
            details: Address and document reference

        Returns:
            New status

        Raises:
            MissingDocument: No identity document reference
            PayoutMethodRequired: No payout destination connected
            KycAlreadyVerified: Account already verified
        """
        document_url = sanitize_input(details.document_url)
        if not document_url:
            raise MissingDocument(account_id=account_id)

        fields = {
            "address": sanitize_input(details.address, 255),
            "city": sanitize_input(details.city, 100),
            "postal_code": sanitize_input(details.postal_code, 20),
            "country": sanitize_input(details.country, 100),
        }
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )

        async with self.account_transaction(account_id) as account:
            if account.kyc_status == KycStatus.VERIFIED.value:
                raise KycAlreadyVerified(account_id=account_id)
            if not account.has_payout_destination:
                raise PayoutMethodRequired(
                    "Connect a payout method before submitting KYC",
                    account_id=account_id,
                )

            # Resubmission replaces any queued request
            await self.kyc_repo.delete_by_account(account_id)
            await self.kyc_repo.create(
                account_id=account_id, document_url=document_url, **fields
            )
            account.kyc_status = KycStatus.PENDING.value
            account.kyc_rejection_reason = None
            view = KycStatusView(
                status=account.kyc_status,
                rejection_reason=None,
                payout_connected=account.has_payout_destination,
            )

        self.logger.info(
            "KYC submitted",
            extra={"account_id": account_id, "country": fields["country"]},
        )
        return view

    async def approve(self, account_id: int) -> KycDecision:
        """
        Approve pending submission.

        Raises:
            RequestNotFound: No pending submission
        """
        async with self.account_transaction(account_id) as account:
            await self._consume_submission(account_id)
            account.kyc_status = KycStatus.VERIFIED.value
            account.kyc_rejection_reason = None

        self.logger.info("KYC approved", extra={"account_id": account_id})
        return KycDecision(
            account_id=account_id,
            status=KycStatus.VERIFIED.value,
            rejection_reason=None,
            notify="Your identity has been verified. Fiat withdrawals are now available.",
        )

    async def reject(self, account_id: int, reason: str | None = None) -> KycDecision:
        """
        Reject pending submission.

        Args:
            account_id: Account under review
            reason: Reason shown to the user; a generic one is used if empty

        Raises:
            RequestNotFound: No pending submission
        """
        reason = sanitize_input(reason) or DEFAULT_KYC_REJECTION_REASON

        async with self.account_transaction(account_id) as account:
            await self._consume_submission(account_id)
            account.kyc_status = KycStatus.REJECTED.value
            account.kyc_rejection_reason = reason

        self.logger.info(
            "KYC rejected", extra={"account_id": account_id, "reason": reason}
        )
        return KycDecision(
            account_id=account_id,
            status=KycStatus.REJECTED.value,
            rejection_reason=reason,
            notify=f"Your verification was rejected: {reason}",
        )

    async def get_status(self, account_id: int) -> KycStatusView:
        """Current verification state."""
        account = await self.get_account(account_id)
        return KycStatusView(
            status=account.kyc_status,
            rejection_reason=account.kyc_rejection_reason,
            payout_connected=account.has_payout_destination,
        )

    async def list_pending(self) -> list[KycQueueItem]:
        """Admin queue, newest first."""
        items = []
        for submission in await self.kyc_repo.list_pending():
            account = await self.get_account(submission.account_id)
            items.append(
                KycQueueItem(
                    account_id=account.id,
                    account_name=account.full_name,
                    account_email=account.email,
                    submitted_at=submission.submitted_at,
                    address=submission.address,
                    city=submission.city,
                    postal_code=submission.postal_code,
                    country=submission.country,
                    document_url=submission.document_url,
                )
            )
        return items

    async def _consume_submission(self, account_id: int) -> None:
        """Remove the queued submission; it must exist."""
        removed = await self.kyc_repo.delete_by_account(account_id)
        if not removed:
            raise RequestNotFound(account_id=account_id)
