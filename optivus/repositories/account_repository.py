"""
Account repository.

Data access layer for Account model.
"""

from sqlalchemy import Integer, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from optivus.config.constants import TREASURY_EMAIL, TREASURY_USERNAME
from optivus.models.account import Account
from optivus.models.enums import AccountRole, AccountStatus
from optivus.repositories.base import BaseRepository
from optivus.utils.datetime_utils import utc_now


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_username(self, username: str) -> Account | None:
        """Get account by username (case-insensitive)."""
        stmt = select(Account).where(
            func.lower(Account.username) == username.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Account | None:
        """Get account by e-mail (stored lower-case)."""
        return await self.get_by(email=email.lower())

    async def get_by_referral_code(self, code: str) -> Account | None:
        """
        Get account by referral code.

        Args:
            code: Referral code (case-insensitive)

        Returns:
            Account or None
        """
        return await self.get_by(referral_code=code.strip().upper())

    async def get_treasury(self) -> Account | None:
        """Get the protocol treasury account."""
        return await self.get_by(role=AccountRole.SYSTEM.value)

    async def get_children(self, parent_ids: list[int]) -> list[Account]:
        """
        Get direct referrals of several accounts at once.

        Args:
            parent_ids: Sponsor account IDs

        Returns:
            Accounts sponsored by any of the given IDs, ordered by ID
        """
        if not parent_ids:
            return []
        stmt = (
            select(Account)
            .where(Account.sponsor_id.in_(parent_ids))
            .order_by(Account.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_members(self) -> int:
        """Count registered members (treasury excluded)."""
        stmt = select(func.count(Account.id)).where(
            Account.role != AccountRole.SYSTEM.value
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_by_status(self, status: AccountStatus) -> int:
        """Count members with given status."""
        return await self.count(status=status.value)

    async def get_ancestor_chain(
        self, account_id: int, max_depth: int
    ) -> list[Account]:
        """
        Get sponsor chain using a recursive CTE.

        Walks sponsor links upward from the account; the depth bound keeps
        the query finite even on corrupted data.

        Args:
            account_id: Starting account ID
            max_depth: Maximum number of ancestors to return

        Returns:
            Sponsors ordered closest first
        """
        if max_depth <= 0:
            return []

        chain = (
            select(
                Account.id,
                Account.sponsor_id,
                literal(0, type_=Integer).label("depth"),
            )
            .where(Account.id == account_id)
            .cte(name="sponsor_chain", recursive=True)
        )
        sponsor = aliased(Account)
        chain = chain.union_all(
            select(
                sponsor.id,
                sponsor.sponsor_id,
                (chain.c.depth + 1).label("depth"),
            )
            .join(chain, sponsor.id == chain.c.sponsor_id)
            .where(chain.c.depth < max_depth)
        )

        stmt = (
            select(Account)
            .join(chain, Account.id == chain.c.id)
            .where(chain.c.depth > 0)
            .order_by(chain.c.depth)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_or_create_treasury(self) -> Account:
        """
        Get the treasury account, creating it on first use.

        The treasury cannot log in: its password hash is not a bcrypt hash.

        Returns:
            Treasury account
        """
        treasury = await self.get_treasury()
        if treasury is not None:
            return treasury
        return await self.create(
            first_name="Optivus",
            last_name="Treasury",
            username=TREASURY_USERNAME,
            email=TREASURY_EMAIL,
            password_hash="!",
            role=AccountRole.SYSTEM.value,
            status=AccountStatus.ACTIVE.value,
            activated_at=utc_now(),
        )
