"""
AdminAction repository.

Data access layer for AdminAction model.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.admin_action import AdminAction
from optivus.models.enums import AdminActionType
from optivus.repositories.base import BaseRepository


class AdminActionRepository(BaseRepository[AdminAction]):
    """Admin audit trail repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize admin action repository."""
        super().__init__(AdminAction, session)

    async def log_action(
        self,
        admin_id: int | None,
        action_type: AdminActionType,
        target_account_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> AdminAction:
        """
        Record admin action.

        Args:
            admin_id: Acting admin account ID
            action_type: Action type
            target_account_id: Affected account
            details: JSON-serializable details

        Returns:
            Created audit row
        """
        return await self.create(
            admin_id=admin_id,
            action_type=action_type.value,
            target_account_id=target_account_id,
            details=details,
        )

    async def get_by_target(self, target_account_id: int) -> list[AdminAction]:
        """Audit rows affecting an account, oldest first."""
        return await self.find_by(target_account_id=target_account_id)
