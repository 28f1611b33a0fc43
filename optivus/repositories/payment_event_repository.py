"""
PaymentEvent repository.

Data access layer for PaymentEvent model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.payment_event import PaymentEvent
from optivus.repositories.base import BaseRepository


class PaymentEventRepository(BaseRepository[PaymentEvent]):
    """Payment event repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment event repository."""
        super().__init__(PaymentEvent, session)

    async def get_by_event_id(self, payment_event_id: str) -> PaymentEvent | None:
        """Get event by external payment event id."""
        return await self.get_by(payment_event_id=payment_event_id)
