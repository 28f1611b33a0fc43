"""
Ledger repository.

Data access layer for LedgerEntry model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.enums import LedgerEntryKind, LedgerEntryStatus
from optivus.models.ledger_entry import LedgerEntry
from optivus.repositories.base import BaseRepository
from optivus.utils.money import to_money


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Ledger repository with aggregate queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger repository."""
        super().__init__(LedgerEntry, session)

    async def posted_total(self, account_id: int) -> Decimal:
        """
        Sum of every entry whose effect is applied to the balance.

        Withdrawal debits are applied when requested (Pending) and stay
        applied when they fail, because denial posts a separate Reversal.
        So every row counts.

        Args:
            account_id: Account ID

        Returns:
            Posted total
        """
        stmt = select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.account_id == account_id
        )
        result = await self.session.execute(stmt)
        return to_money(result.scalar())

    async def sum_amounts(
        self,
        account_id: int | None = None,
        kinds: list[LedgerEntryKind] | None = None,
        status: LedgerEntryStatus | None = None,
    ) -> Decimal:
        """
        Sum entry amounts with optional filters.

        Args:
            account_id: Restrict to one account
            kinds: Restrict to entry kinds
            status: Restrict to status

        Returns:
            Sum of matching amounts
        """
        stmt = select(func.coalesce(func.sum(LedgerEntry.amount), 0))
        if account_id is not None:
            stmt = stmt.where(LedgerEntry.account_id == account_id)
        if kinds:
            stmt = stmt.where(LedgerEntry.kind.in_([k.value for k in kinds]))
        if status is not None:
            stmt = stmt.where(LedgerEntry.status == status.value)
        result = await self.session.execute(stmt)
        return to_money(result.scalar())

    async def get_by_reference(
        self, account_id: int, kind: LedgerEntryKind, reference: str
    ) -> LedgerEntry | None:
        """
        Get entry by account, kind and external reference.

        Used to deduplicate commission credits per payment event.
        """
        return await self.get_by(
            account_id=account_id, kind=kind.value, reference=reference
        )

    async def get_by_reference_all(
        self, reference: str, kind: LedgerEntryKind | None = None
    ) -> list[LedgerEntry]:
        """Get all entries carrying an external reference."""
        filters: dict[str, str] = {"reference": reference}
        if kind is not None:
            filters["kind"] = kind.value
        return await self.find_by(**filters)

    async def commission_by_level(
        self, account_id: int
    ) -> dict[int, Decimal]:
        """
        Commission earned per tier level.

        Args:
            account_id: Earning account ID

        Returns:
            Mapping of level to total commission
        """
        stmt = (
            select(LedgerEntry.level, func.sum(LedgerEntry.amount))
            .where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.kind == LedgerEntryKind.COMMISSION.value,
                LedgerEntry.status == LedgerEntryStatus.COMPLETED.value,
            )
            .group_by(LedgerEntry.level)
        )
        result = await self.session.execute(stmt)
        return {
            level: to_money(total)
            for level, total in result.all()
            if level is not None
        }
