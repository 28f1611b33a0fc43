"""
Payment service.

Entry point for the payment collaborator: a confirmed entry-fee payment
activates the account and triggers commission distribution.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.settings import settings
from optivus.models.enums import PaymentEventStatus
from optivus.repositories.payment_event_repository import PaymentEventRepository
from optivus.services.account import AccountService
from optivus.services.base_service import BaseService
from optivus.services.referral.commission_engine import (
    CommissionEngine,
    DistributionResult,
)
from optivus.utils.exceptions import (
    DuplicatePaymentEvent,
    InvalidFeeAmount,
    ValidationError,
)
from optivus.utils.money import parse_amount, to_money


@dataclass
class ActivationResult:
    """Activated account and how its entry fee was split."""

    account_id: int
    referral_code: str
    sponsor_id: int | None
    distribution: DistributionResult


class PaymentService(BaseService):
    """Confirms entry-fee payments."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment service."""
        super().__init__(session)
        self.event_repo = PaymentEventRepository(session)
        self.accounts = AccountService(session)
        self.engine = CommissionEngine(session)

    async def confirm_entry_fee(
        self,
        account_id: int,
        fee_amount: Decimal | str,
        payment_event_id: str,
    ) -> ActivationResult:
        """
        Record confirmed entry-fee payment, activate account, pay commissions.

        Activation and the event record commit together; the distribution
        then runs as independent per-recipient transactions.

        Args:
            account_id: Paying account
            fee_amount: Amount paid
            payment_event_id: Unique id from the payment provider

        Returns:
            ActivationResult

        Raises:
            InvalidFeeAmount: Amount differs from the configured entry fee
            DuplicatePaymentEvent: Event already processed
            AlreadyActivated: Account already active
        """
        payment_event_id = (payment_event_id or "").strip()
        if not payment_event_id:
            raise ValidationError("Payment event id is required")

        fee = parse_amount(fee_amount)
        if fee is None or fee != to_money(settings.entry_fee):
            raise InvalidFeeAmount(
                fee_amount=str(fee_amount), entry_fee=str(settings.entry_fee)
            )

        if await self.event_repo.get_by_event_id(payment_event_id) is not None:
            self.logger.warning(
                "Payment event replayed",
                extra={"payment_event_id": payment_event_id, "account_id": account_id},
            )
            raise DuplicatePaymentEvent(payment_event_id=payment_event_id)

        try:
            async with self.account_transaction(account_id) as account:
                event = await self.event_repo.create(
                    payment_event_id=payment_event_id,
                    account_id=account.id,
                    fee_amount=fee,
                    status=PaymentEventStatus.PROCESSING.value,
                )
                await self.accounts.activate(account)
                referral_code = account.referral_code
                sponsor_id = account.sponsor_id
        except IntegrityError as e:
            # Concurrent confirmation of the same event won the insert
            raise DuplicatePaymentEvent(payment_event_id=payment_event_id) from e

        self.logger.info(
            "Entry fee confirmed",
            extra={
                "payment_event_id": payment_event_id,
                "account_id": account_id,
                "fee": str(fee),
            },
        )

        distribution = await self.engine.distribute(event)
        return ActivationResult(
            account_id=account_id,
            referral_code=referral_code,
            sponsor_id=sponsor_id,
            distribution=distribution,
        )

    async def retry_distribution(self, payment_event_id: str) -> DistributionResult:
        """Re-apply credits missing from a partially distributed event."""
        return await self.engine.retry_distribution(payment_event_id)
