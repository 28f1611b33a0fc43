"""
Integration tests for concurrent balance mutations.

Tests cover:
- Competing withdrawals on one balance, each on its own session
- Two distributions of the same payment event racing each other
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from optivus.models import (
    LedgerEntry,
    LedgerEntryKind,
    PaymentEvent,
    PaymentEventStatus,
    WithdrawalMethod,
)
from optivus.repositories.account_repository import AccountRepository
from optivus.services.ledger_service import LedgerService
from optivus.services.referral.commission_engine import CommissionEngine
from optivus.services.withdrawal_service import WithdrawalService
from optivus.utils.database import create_session_maker
from optivus.utils.exceptions import InsufficientBalance

FEE = Decimal("50.00")


async def _entries(session, account_id, kind, reference=None):
    query = select(func.count(LedgerEntry.id)).where(
        LedgerEntry.account_id == account_id, LedgerEntry.kind == kind.value
    )
    if reference is not None:
        query = query.where(LedgerEntry.reference == reference)
    return (await session.execute(query)).scalar()


class TestConcurrentWithdrawals:
    """Withdrawals racing on one account."""

    @pytest.mark.asyncio
    async def test_only_affordable_requests_succeed(
        self, engine, session, crypto_member, balance_of
    ):
        """Four £150 requests against £500: three succeed, one is refused."""
        account_id = crypto_member.id
        session_maker = create_session_maker(engine)

        async def withdraw():
            async with session_maker() as own_session:
                return await WithdrawalService(own_session).request_withdrawal(
                    account_id, "150.00", WithdrawalMethod.CRYPTO, pin="1234"
                )

        results = await asyncio.gather(
            *(withdraw() for _ in range(4)), return_exceptions=True
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 3
        assert len(failed) == 1
        assert isinstance(failed[0], InsufficientBalance)
        assert sorted(r.balance_after for r in succeeded) == [
            Decimal("50.00"),
            Decimal("200.00"),
            Decimal("350.00"),
        ]
        assert await balance_of(account_id) == Decimal("50.00")
        assert await _entries(session, account_id, LedgerEntryKind.WITHDRAWAL) == 3
        assert (await LedgerService(session).reconcile(account_id)).is_consistent


class TestConcurrentDistribution:
    """Two workers distributing the same payment event."""

    @pytest.mark.asyncio
    async def test_each_recipient_credited_once(
        self, engine, session, make_chain, make_account, balance_of
    ):
        """Racing distributions credit every recipient exactly once."""
        chain = await make_chain(2)
        ids = [a.id for a in chain]
        payer = await make_account(sponsor=chain[-1])
        payer_id = payer.id
        treasury = await AccountRepository(session).get_or_create_treasury()
        treasury_id = treasury.id
        session.add(
            PaymentEvent(
                payment_event_id="evt_race",
                account_id=payer_id,
                fee_amount=FEE,
                status=PaymentEventStatus.PROCESSING.value,
            )
        )
        await session.commit()
        session_maker = create_session_maker(engine)

        async def distribute():
            async with session_maker() as own_session:
                return await CommissionEngine(own_session).retry_distribution("evt_race")

        first, second = await asyncio.gather(distribute(), distribute())

        assert first.is_complete and second.is_complete
        for account_id in ids:
            applied = [
                c
                for result in (first, second)
                for c in result.credits
                if c.account_id == account_id and not c.already_applied
            ]
            assert len(applied) == 1
            assert (
                await _entries(session, account_id, LedgerEntryKind.COMMISSION, "evt_race")
                == 1
            )

        assert await balance_of(ids[2]) == Decimal("10.00")
        assert await balance_of(ids[1]) == Decimal("8.50")
        assert await balance_of(ids[0]) == Decimal("7.22")
        assert await _entries(session, treasury_id, LedgerEntryKind.FEE, "evt_race") == 1
        assert await balance_of(treasury_id) == FEE - Decimal("25.72")
