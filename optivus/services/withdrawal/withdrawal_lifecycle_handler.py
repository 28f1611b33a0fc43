"""
Withdrawal lifecycle handling module.

Handles admin resolution of pending withdrawals. Each request resolves
exactly once: approval settles the Pending entry as Completed, denial
marks it Failed and posts a Reversal that restores the funds.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.enums import (
    LedgerEntryKind,
    LedgerEntryStatus,
    WithdrawalStatus,
)
from optivus.models.withdrawal_request import WithdrawalRequest
from optivus.repositories.ledger_repository import LedgerRepository
from optivus.repositories.withdrawal_repository import WithdrawalRepository
from optivus.services.base_service import BaseService
from optivus.services.ledger_service import LedgerService
from optivus.utils.datetime_utils import utc_now
from optivus.utils.exceptions import AlreadyResolved, WithdrawalNotFound
from optivus.utils.money import to_money


@dataclass
class WithdrawalResolution:
    """Outcome of an admin decision, with a notification hint."""

    request_id: int
    account_id: int
    status: str
    amount: Decimal
    balance_after: Decimal
    resolved_at: datetime
    reversal_entry_id: int | None = None
    notify: str | None = None


class WithdrawalLifecycleHandler(BaseService):
    """Handles withdrawal lifecycle operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger_repo = LedgerRepository(session)
        self.ledger = LedgerService(session)

    async def approve_withdrawal(
        self, request_id: int, admin_id: int
    ) -> WithdrawalResolution:
        """
        Approve withdrawal (admin only).

        The debit already happened at request time; only the entry status
        changes.

        Args:
            request_id: Withdrawal request ID
            admin_id: Resolving admin

        Returns:
            WithdrawalResolution

        Raises:
            WithdrawalNotFound: Unknown request
            AlreadyResolved: Request already approved or denied
        """
        account_id = await self._account_id_for(request_id)

        async with self.account_transaction(account_id) as account:
            request = await self._lock_pending(request_id)
            entry = await self.ledger_repo.get_by_id(request.ledger_entry_id)
            await self.ledger.settle_entry(
                entry,
                LedgerEntryStatus.COMPLETED,
                description=f"Withdrawal to {request.destination}",
            )
            self._close(request, WithdrawalStatus.APPROVED, admin_id)
            await self.session.flush()

            resolution = WithdrawalResolution(
                request_id=request.id,
                account_id=account.id,
                status=request.status,
                amount=to_money(request.amount),
                balance_after=to_money(account.balance),
                resolved_at=request.resolved_at,
                notify="Your withdrawal has been approved and is on its way.",
            )

        self.logger.info(
            "Withdrawal approved",
            extra={
                "request_id": request_id,
                "account_id": account_id,
                "admin_id": admin_id,
                "amount": str(resolution.amount),
            },
        )
        return resolution

    async def deny_withdrawal(
        self, request_id: int, admin_id: int
    ) -> WithdrawalResolution:
        """
        Deny withdrawal and RETURN BALANCE to account.

        Args:
            request_id: Withdrawal request ID
            admin_id: Resolving admin

        Returns:
            WithdrawalResolution

        Raises:
            WithdrawalNotFound: Unknown request
            AlreadyResolved: Request already approved or denied
        """
        account_id = await self._account_id_for(request_id)

        async with self.account_transaction(account_id) as account:
            request = await self._lock_pending(request_id)
            entry = await self.ledger_repo.get_by_id(request.ledger_entry_id)
            await self.ledger.settle_entry(
                entry,
                LedgerEntryStatus.FAILED,
                description="Withdrawal denied by admin.",
            )
            reversal = await self.ledger.post_entry(
                account,
                kind=LedgerEntryKind.REVERSAL,
                amount=to_money(request.amount),
                description="Refund for denied withdrawal",
                withdrawal_request_id=request.id,
            )
            self._close(request, WithdrawalStatus.DENIED, admin_id)
            await self.session.flush()

            resolution = WithdrawalResolution(
                request_id=request.id,
                account_id=account.id,
                status=request.status,
                amount=to_money(request.amount),
                balance_after=to_money(account.balance),
                resolved_at=request.resolved_at,
                reversal_entry_id=reversal.id,
                notify=(
                    "Your withdrawal was denied and the funds have been "
                    "returned to your balance."
                ),
            )

        self.logger.info(
            "Withdrawal denied and balance returned",
            extra={
                "request_id": request_id,
                "account_id": account_id,
                "admin_id": admin_id,
                "amount": str(resolution.amount),
            },
        )
        return resolution

    async def _account_id_for(self, request_id: int) -> int:
        request = await self.withdrawal_repo.get_by_id(request_id)
        if request is None:
            raise WithdrawalNotFound(request_id=request_id)
        return request.account_id

    async def _lock_pending(self, request_id: int) -> WithdrawalRequest:
        """Reload request under lock; it must still be pending."""
        request = await self.withdrawal_repo.get_for_update(request_id)
        if request is None:
            raise WithdrawalNotFound(request_id=request_id)
        if request.status != WithdrawalStatus.PENDING.value:
            raise AlreadyResolved(request_id=request_id, status=request.status)
        return request

    def _close(
        self, request: WithdrawalRequest, status: WithdrawalStatus, admin_id: int
    ) -> None:
        request.status = status.value
        request.resolved_by = admin_id
        request.resolved_at = utc_now()
