"""
Withdrawal request handling module.

Handles the creation of withdrawal requests: validation, immediate
balance debit, the Pending ledger entry and the admin queue record, all
in one transaction on the account.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import (
    LedgerEntryKind,
    LedgerEntryStatus,
    WithdrawalMethod,
    WithdrawalStatus,
)
from optivus.repositories.withdrawal_repository import WithdrawalRepository
from optivus.services.base_service import BaseService
from optivus.services.ledger_service import LedgerService
from optivus.services.withdrawal.withdrawal_validator_core import (
    WithdrawalDraft,
    WithdrawalValidator,
)
from optivus.utils.datetime_utils import utc_now
from optivus.utils.exceptions import InvalidPin, OptivusError
from optivus.utils.money import to_money
from optivus.utils.security import mask_address


@dataclass
class WithdrawalReceipt:
    """Accepted withdrawal request."""

    request_id: int
    ledger_entry_id: int
    amount: Decimal
    method: str
    destination: str
    balance_after: Decimal
    created_at: datetime
    message: str = "Withdrawal initiated successfully. Your balance has been updated."


class WithdrawalRequestHandler(BaseService):
    """Handles withdrawal request creation and validation."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session)
        self.validator = WithdrawalValidator(session)

    async def request_withdrawal(self, draft: WithdrawalDraft) -> WithdrawalReceipt:
        """
        Request withdrawal with immediate balance debit.

        Args:
            draft: Submitted request

        Returns:
            WithdrawalReceipt

        Raises:
            OptivusError: The first failing guard; no balance change. A wrong
                PIN still counts towards the lockout.
        """
        failure: OptivusError | None = None
        receipt: WithdrawalReceipt | None = None

        async with self.account_transaction(draft.account_id) as account:
            result = await self.validator.validate_withdrawal_request(account, draft)

            if not result.is_valid:
                if isinstance(result.error, InvalidPin):
                    self._record_failed_pin(account)
                failure = result.error
            else:
                method = WithdrawalMethod(draft.method)
                request = await self.withdrawal_repo.create(
                    account_id=account.id,
                    amount=result.amount,
                    method=method.value,
                    destination=result.destination,
                    network=result.network,
                    status=WithdrawalStatus.PENDING.value,
                )
                entry = await self.ledger.post_entry(
                    account,
                    kind=LedgerEntryKind.WITHDRAWAL,
                    amount=-result.amount,
                    description=f"Pending withdrawal to {result.destination}",
                    status=LedgerEntryStatus.PENDING,
                    withdrawal_request_id=request.id,
                )
                request.ledger_entry_id = entry.id
                await self.session.flush()

                receipt = WithdrawalReceipt(
                    request_id=request.id,
                    ledger_entry_id=entry.id,
                    amount=result.amount,
                    method=method.value,
                    destination=result.destination,
                    balance_after=to_money(account.balance),
                    created_at=request.created_at,
                )

        if failure is not None:
            self.logger.warning(
                f"Withdrawal rejected: {failure.code}",
                extra={
                    "account_id": draft.account_id,
                    "amount": str(draft.amount),
                    "method": str(draft.method),
                    "error": failure.message,
                },
            )
            raise failure

        self.logger.info(
            "Withdrawal request created",
            extra={
                "request_id": receipt.request_id,
                "account_id": draft.account_id,
                "amount": str(receipt.amount),
                "method": receipt.method,
                "destination": mask_address(receipt.destination),
            },
        )
        return receipt

    def _record_failed_pin(self, account: Account) -> None:
        """Count a wrong PIN and start the lockout at the limit."""
        account.pin_attempts = (account.pin_attempts or 0) + 1
        if account.pin_attempts >= settings.pin_max_attempts:
            account.pin_locked_until = utc_now() + timedelta(
                minutes=settings.pin_lockout_minutes
            )
            self.logger.warning(
                "Withdrawal PIN locked",
                extra={
                    "account_id": account.id,
                    "attempts": account.pin_attempts,
                    "lockout_minutes": settings.pin_lockout_minutes,
                },
            )
