"""
KYC repository.

Data access layer for KycSubmission model.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.kyc_submission import KycSubmission
from optivus.repositories.base import BaseRepository


class KycRepository(BaseRepository[KycSubmission]):
    """KYC submission repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize KYC repository."""
        super().__init__(KycSubmission, session)

    async def get_by_account(self, account_id: int) -> KycSubmission | None:
        """Get queued submission for account."""
        return await self.get_by(account_id=account_id)

    async def delete_by_account(self, account_id: int) -> bool:
        """
        Remove queued submission for account.

        Returns:
            True if a submission was removed
        """
        stmt = delete(KycSubmission).where(
            KycSubmission.account_id == account_id
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def list_pending(self) -> list[KycSubmission]:
        """Queued submissions, newest first."""
        stmt = select(KycSubmission).order_by(
            KycSubmission.submitted_at.desc(), KycSubmission.id.desc()
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
