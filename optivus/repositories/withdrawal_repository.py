"""
Withdrawal repository.

Data access layer for WithdrawalRequest model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.enums import WithdrawalStatus
from optivus.models.withdrawal_request import WithdrawalRequest
from optivus.repositories.base import BaseRepository
from optivus.utils.money import to_money


class WithdrawalRepository(BaseRepository[WithdrawalRequest]):
    """Withdrawal request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(WithdrawalRequest, session)

    async def list_pending(self) -> list[WithdrawalRequest]:
        """Pending requests, newest first (admin queue order)."""
        stmt = (
            select(WithdrawalRequest)
            .where(WithdrawalRequest.status == WithdrawalStatus.PENDING.value)
            .order_by(WithdrawalRequest.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        """Count pending requests."""
        return await self.count(status=WithdrawalStatus.PENDING.value)

    async def pending_total(self, account_id: int) -> Decimal:
        """Total amount of an account's pending requests."""
        stmt = select(
            func.coalesce(func.sum(WithdrawalRequest.amount), 0)
        ).where(
            WithdrawalRequest.account_id == account_id,
            WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return to_money(result.scalar())
