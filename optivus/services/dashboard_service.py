"""
Dashboard service.

Read-only views for the account holder: balance and earnings summary,
downline per level, the team tree and transaction history.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.enums import LedgerEntryKind, LedgerEntryStatus
from optivus.repositories.ledger_repository import LedgerRepository
from optivus.services.base_service import BaseService
from optivus.services.ledger_service import LedgerService, TransactionPage
from optivus.services.referral.config import TierSchedule
from optivus.services.referral.graph import ReferralGraph, TeamNode
from optivus.utils.money import to_money


@dataclass
class DashboardStats:
    """Headline figures of the member dashboard."""

    balance: Decimal
    total_earnings: Decimal
    team_size: int
    direct_referrals: int
    referral_code: str | None


@dataclass
class LevelSummary:
    """Downline members and commission earned at one tier."""

    level: int
    users: int
    earnings: Decimal
    rate: Decimal


class DashboardService(BaseService):
    """Member dashboard queries."""

    def __init__(self, session: AsyncSession, schedule: TierSchedule | None = None) -> None:
        """Initialize dashboard service."""
        super().__init__(session)
        self.schedule = schedule or TierSchedule.from_settings()
        self.graph = ReferralGraph(session)
        self.ledger = LedgerService(session)
        self.ledger_repo = LedgerRepository(session)

    async def dashboard_stats(self, account_id: int) -> DashboardStats:
        """
        Balance, lifetime earnings and team size.

        Earnings count Completed Commission and Bonus entries only.
        """
        account = await self.get_account(account_id)
        await self.session.refresh(account)

        earnings = await self.ledger_repo.sum_amounts(
            account_id=account_id,
            kinds=[LedgerEntryKind.COMMISSION, LedgerEntryKind.BONUS],
            status=LedgerEntryStatus.COMPLETED,
        )
        tree = await self.graph.descendant_tree(account_id)
        team_size = sum(1 + len(node.flatten()) for node in tree)

        return DashboardStats(
            balance=to_money(account.balance),
            total_earnings=earnings,
            team_size=team_size,
            direct_referrals=len(tree),
            referral_code=account.referral_code,
        )

    async def downline_by_level(self, account_id: int) -> list[LevelSummary]:
        """
        Users and commission per paying tier.

        Every tier of the schedule is listed, including empty ones.
        """
        await self.get_account(account_id)
        counts = await self.graph.level_counts(account_id, self.schedule.depth)
        earnings = await self.ledger_repo.commission_by_level(account_id)

        return [
            LevelSummary(
                level=level,
                users=counts.get(level, 0),
                earnings=earnings.get(level, to_money(0)),
                rate=rate,
            )
            for level, rate in enumerate(self.schedule.rates, start=1)
        ]

    async def team_tree(self, account_id: int, max_depth: int | None = None) -> list[TeamNode]:
        """Full downline as nested nodes."""
        return await self.graph.descendant_tree(account_id, max_depth)

    async def transaction_history(
        self, account_id: int, page: int = 1, limit: int | None = None
    ) -> TransactionPage:
        """Account's ledger, newest first."""
        await self.get_account(account_id)
        return await self.ledger.get_history(account_id, page=page, limit=limit)
