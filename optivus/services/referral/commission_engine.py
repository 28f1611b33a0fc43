"""
Commission engine.

Splits a confirmed entry fee across the sponsor chain and sweeps whatever
the chain does not claim into the treasury. Each recipient is credited in
its own transaction; a credit is keyed by (account, payment event id) so
re-running a distribution only fills in the gaps.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import LedgerEntryKind, PaymentEventStatus
from optivus.models.payment_event import PaymentEvent
from optivus.repositories.ledger_repository import LedgerRepository
from optivus.repositories.payment_event_repository import PaymentEventRepository
from optivus.services.base_service import BaseService
from optivus.services.ledger_service import LedgerService
from optivus.services.referral.config import TierSchedule
from optivus.services.referral.graph import ReferralGraph
from optivus.utils.exceptions import PaymentEventNotFound
from optivus.utils.money import format_money, to_money


@dataclass
class CommissionCredit:
    """Planned or applied credit for one recipient."""

    account_id: int
    level: int | None
    amount: Decimal
    kind: LedgerEntryKind = LedgerEntryKind.COMMISSION
    entry_id: int | None = None
    already_applied: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class DistributionResult:
    """Outcome of distributing one payment event."""

    payment_event_id: str
    fee: Decimal
    credits: list[CommissionCredit] = field(default_factory=list)
    treasury: CommissionCredit | None = None

    @property
    def commission_total(self) -> Decimal:
        return sum((c.amount for c in self.credits), Decimal("0"))

    @property
    def treasury_amount(self) -> Decimal:
        return self.treasury.amount if self.treasury else Decimal("0")

    @property
    def failures(self) -> list[CommissionCredit]:
        recipients = [*self.credits, *([self.treasury] if self.treasury else [])]
        return [c for c in recipients if not c.succeeded]

    @property
    def is_complete(self) -> bool:
        return not self.failures


class CommissionEngine(BaseService):
    """Distributes entry fees across the sponsor chain."""

    def __init__(
        self, session: AsyncSession, schedule: TierSchedule | None = None
    ) -> None:
        """
        Initialize commission engine.

        Args:
            session: Async database session
            schedule: Tier schedule (defaults to settings)
        """
        super().__init__(session)
        self.schedule = schedule or TierSchedule.from_settings()
        self.graph = ReferralGraph(session)
        self.ledger = LedgerService(session)
        self.ledger_repo = LedgerRepository(session)
        self.event_repo = PaymentEventRepository(session)

    def plan(
        self, fee: Decimal, chain: list[Account]
    ) -> tuple[list[CommissionCredit], Decimal]:
        """
        Compute commission split without touching the database.

        Args:
            fee: Entry fee
            chain: Ancestors, closest first

        Returns:
            Tuple of (credits per sponsor, treasury remainder)
        """
        credits = []
        for index, sponsor in enumerate(chain[: self.schedule.depth]):
            level = index + 1
            amount = self.schedule.amount_for_level(fee, level)
            if amount <= 0:
                continue
            credits.append(
                CommissionCredit(account_id=sponsor.id, level=level, amount=amount)
            )
        distributed = sum((c.amount for c in credits), Decimal("0"))
        return credits, to_money(fee - distributed)

    async def distribute(self, event: PaymentEvent) -> DistributionResult:
        """
        Distribute a recorded payment event.

        Safe to call repeatedly for the same event: recipients already
        credited for it are skipped.

        Args:
            event: Persisted payment event

        Returns:
            DistributionResult; failures are reported, not raised
        """
        # Plain copies: a failed credit rolls back and expires ORM instances
        event_id = event.payment_event_id
        payer_id = event.account_id
        fee = to_money(event.fee_amount)
        chain = await self.graph.ancestor_chain(payer_id, self.schedule.depth)
        credits, remainder = self.plan(fee, chain)

        result = DistributionResult(payment_event_id=event_id, fee=fee)

        for credit in credits:
            await self._apply_credit(
                credit,
                reference=event_id,
                source_account_id=payer_id,
                description=(
                    f"Level {credit.level} commission from account #{payer_id}"
                ),
            )
            result.credits.append(credit)

        if remainder > 0:
            treasury = await self.account_repo.get_or_create_treasury()
            await self.commit()
            sweep = CommissionCredit(
                account_id=treasury.id,
                level=None,
                amount=remainder,
                kind=LedgerEntryKind.FEE,
            )
            await self._apply_credit(
                sweep,
                reference=event_id,
                source_account_id=payer_id,
                description=(
                    f"Treasury share of {format_money(fee, settings.currency_symbol)} "
                    f"entry fee from account #{payer_id}"
                ),
            )
            result.treasury = sweep

        await self._mark_event(event_id, result)

        self.logger.info(
            "Entry fee distributed",
            extra={
                "payment_event_id": event_id,
                "account_id": payer_id,
                "fee": str(fee),
                "chain_length": len(chain),
                "commission_total": str(result.commission_total),
                "treasury_amount": str(result.treasury_amount),
                "failures": len(result.failures),
            },
        )
        return result

    async def retry_distribution(self, payment_event_id: str) -> DistributionResult:
        """
        Re-apply missing credits for an event.

        Args:
            payment_event_id: External payment event id

        Returns:
            DistributionResult (already-applied credits flagged)

        Raises:
            PaymentEventNotFound: Unknown event
        """
        event = await self.event_repo.get_by_event_id(payment_event_id)
        if event is None:
            raise PaymentEventNotFound(payment_event_id=payment_event_id)
        return await self.distribute(event)

    async def _apply_credit(
        self,
        credit: CommissionCredit,
        reference: str,
        source_account_id: int,
        description: str,
    ) -> None:
        """Credit one recipient in its own transaction, at most once."""
        try:
            async with self.account_transaction(credit.account_id) as account:
                existing = await self.ledger_repo.get_by_reference(
                    account.id, credit.kind, reference
                )
                if existing is not None:
                    credit.entry_id = existing.id
                    credit.already_applied = True
                    return
                entry = await self.ledger.post_entry(
                    account,
                    kind=credit.kind,
                    amount=credit.amount,
                    description=description,
                    reference=reference,
                    source_account_id=source_account_id,
                    level=credit.level,
                )
                credit.entry_id = entry.id
        except Exception as e:
            # Earlier recipients stay committed; retry_distribution fills the gap
            credit.error = str(e) or e.__class__.__name__
            self.logger.error(
                "Commission credit failed",
                extra={
                    "account_id": credit.account_id,
                    "level": credit.level,
                    "amount": str(credit.amount),
                    "payment_event_id": reference,
                    "error": credit.error,
                },
                exc_info=True,
            )

    async def _mark_event(self, payment_event_id: str, result: DistributionResult) -> None:
        event = await self.event_repo.get_by_event_id(payment_event_id)
        if event is None:
            return
        event.status = (
            PaymentEventStatus.DISTRIBUTED.value
            if result.is_complete
            else PaymentEventStatus.PARTIAL.value
        )
        await self.commit()
