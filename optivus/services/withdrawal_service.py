"""
Withdrawal service.

Facade over the withdrawal request and lifecycle handlers.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.enums import WithdrawalMethod
from optivus.models.withdrawal_request import WithdrawalRequest
from optivus.repositories.withdrawal_repository import WithdrawalRepository
from optivus.services.base_service import BaseService
from optivus.services.withdrawal import (
    WithdrawalDraft,
    WithdrawalLifecycleHandler,
    WithdrawalReceipt,
    WithdrawalRequestHandler,
    WithdrawalResolution,
)
from optivus.utils.exceptions import InvalidWithdrawalMethod
from optivus.utils.money import to_money
from optivus.utils.validation import validate_choice


@dataclass
class PendingWithdrawalView:
    """Row of the admin withdrawal queue."""

    id: int
    account_id: int
    account_name: str
    account_email: str
    amount: Decimal
    method: str
    destination: str
    network: str | None
    created_at: datetime


class WithdrawalService(BaseService):
    """Withdrawal operations for account holders and admins."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal service."""
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.request_handler = WithdrawalRequestHandler(session)
        self.lifecycle_handler = WithdrawalLifecycleHandler(session)

    async def request_withdrawal(
        self,
        account_id: int,
        amount: Decimal | str,
        method: WithdrawalMethod | str,
        pin: str,
        two_factor_token: str | None = None,
        network: str | None = None,
        address: str | None = None,
    ) -> WithdrawalReceipt:
        """
        Request withdrawal.

        Args:
            account_id: Requesting account
            amount: Amount to withdraw
            method: crypto, stripe or paypal
            pin: Withdrawal PIN
            two_factor_token: TOTP token (required when 2FA is enabled)
            network: Crypto network
            address: Crypto address

        Returns:
            WithdrawalReceipt

        Raises:
            InvalidWithdrawalMethod: Unknown method
            OptivusError: First failing withdrawal guard
        """
        is_valid, parsed_method, error = validate_choice(method, WithdrawalMethod)
        if not is_valid:
            raise InvalidWithdrawalMethod(error, method=str(method))

        draft = WithdrawalDraft(
            account_id=account_id,
            amount=amount,
            method=parsed_method,
            pin=pin,
            two_factor_token=two_factor_token,
            network=network,
            address=address,
        )
        return await self.request_handler.request_withdrawal(draft)

    async def approve(self, request_id: int, admin_id: int) -> WithdrawalResolution:
        """
        Approve pending withdrawal.

        Raises:
            NotAuthorized: admin_id is not an admin
            WithdrawalNotFound, AlreadyResolved: Request not pending
        """
        await self.require_admin(admin_id)
        return await self.lifecycle_handler.approve_withdrawal(request_id, admin_id)

    async def deny(self, request_id: int, admin_id: int) -> WithdrawalResolution:
        """
        Deny pending withdrawal and refund the balance.

        Raises:
            NotAuthorized: admin_id is not an admin
            WithdrawalNotFound, AlreadyResolved: Request not pending
        """
        await self.require_admin(admin_id)
        return await self.lifecycle_handler.deny_withdrawal(request_id, admin_id)

    async def list_pending(self) -> list[PendingWithdrawalView]:
        """Admin queue of pending withdrawals, newest first."""
        pending = await self.withdrawal_repo.list_pending()
        views = []
        for request in pending:
            account = await self.get_account(request.account_id)
            views.append(
                PendingWithdrawalView(
                    id=request.id,
                    account_id=account.id,
                    account_name=account.full_name,
                    account_email=account.email,
                    amount=to_money(request.amount),
                    method=request.method,
                    destination=request.destination,
                    network=request.network,
                    created_at=request.created_at,
                )
            )
        return views

    async def list_for_account(self, account_id: int) -> list[WithdrawalRequest]:
        """All withdrawal requests of an account, oldest first."""
        return await self.withdrawal_repo.find_by(account_id=account_id)
