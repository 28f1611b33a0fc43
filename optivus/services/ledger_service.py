"""
Ledger service.

The only writer of ledger entries and account balances. Every posting
changes the balance and appends the entry in the caller's transaction, so
the two can never drift apart.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import LedgerEntryKind, LedgerEntryStatus
from optivus.models.ledger_entry import LedgerEntry
from optivus.repositories.ledger_repository import LedgerRepository
from optivus.services.base_service import BaseService
from optivus.utils.exceptions import AccountNotFound, InsufficientBalance
from optivus.utils.money import to_money


@dataclass
class LedgerEntryView:
    """Ledger entry as returned to the presentation layer."""

    id: int
    created_at: datetime
    kind: str
    description: str
    amount: Decimal
    status: str

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryView":
        return cls(
            id=entry.id,
            created_at=entry.created_at,
            kind=entry.kind,
            description=entry.description,
            amount=to_money(entry.amount),
            status=entry.status,
        )


@dataclass
class TransactionPage:
    """One page of transaction history."""

    transactions: list[LedgerEntryView]
    current_page: int
    total_pages: int
    total_count: int


@dataclass
class ReconciliationResult:
    """Balance versus posted ledger total."""

    account_id: int
    balance: Decimal
    posted_total: Decimal

    @property
    def is_consistent(self) -> bool:
        return self.balance == self.posted_total


class LedgerService(BaseService):
    """Append-only ledger and balance materialization."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger service.

        Args:
            session: Async database session
        """
        super().__init__(session)
        self.ledger_repo = LedgerRepository(session)

    async def post_entry(
        self,
        account: Account,
        kind: LedgerEntryKind,
        amount: Decimal,
        description: str,
        status: LedgerEntryStatus = LedgerEntryStatus.COMPLETED,
        reference: str | None = None,
        source_account_id: int | None = None,
        level: int | None = None,
        withdrawal_request_id: int | None = None,
    ) -> LedgerEntry:
        """
        Append entry and apply its amount to the balance.

        The account must be locked by the caller (see account_transaction);
        nothing is committed here.

        Args:
            account: Locked account row
            kind: Entry kind
            amount: Signed amount (credit positive, debit negative)
            description: Human-readable description
            status: Initial status (Completed, or Pending for withdrawals)
            reference: External reference (payment event id)
            source_account_id: Account that caused the entry
            level: Commission tier
            withdrawal_request_id: Linked withdrawal request

        Returns:
            Created entry

        Raises:
            InsufficientBalance: If a debit would make the balance negative
        """
        amount = to_money(amount)
        new_balance = to_money(account.balance) + amount
        if new_balance < 0:
            raise InsufficientBalance(
                account_id=account.id,
                balance=str(account.balance),
                amount=str(amount),
            )

        account.balance = new_balance
        entry = await self.ledger_repo.create(
            account_id=account.id,
            kind=kind.value,
            amount=amount,
            status=status.value,
            description=description,
            reference=reference,
            source_account_id=source_account_id,
            level=level,
            withdrawal_request_id=withdrawal_request_id,
        )

        self.logger.info(
            "Ledger entry posted",
            extra={
                "entry_id": entry.id,
                "account_id": account.id,
                "kind": kind.value,
                "amount": str(amount),
                "status": status.value,
                "balance_after": str(new_balance),
            },
        )
        return entry

    async def settle_entry(
        self, entry: LedgerEntry, status: LedgerEntryStatus, description: str | None = None
    ) -> LedgerEntry:
        """
        Move a Pending entry to its final status.

        Settlement never touches the balance: the amount was applied when
        the entry was posted.

        Args:
            entry: Pending entry
            status: Completed or Failed
            description: Optional replacement description

        Returns:
            Updated entry
        """
        if entry.status != LedgerEntryStatus.PENDING.value:
            raise ValueError(f"Ledger entry {entry.id} is already settled")
        if status is LedgerEntryStatus.PENDING:
            raise ValueError("Settlement status must be Completed or Failed")

        entry.status = status.value
        if description is not None:
            entry.description = description
        await self.session.flush()
        return entry

    async def reconcile(self, account_id: int) -> ReconciliationResult:
        """
        Compare materialized balance with the ledger.

        Args:
            account_id: Account ID

        Returns:
            ReconciliationResult
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFound(account_id=account_id)
        await self.session.refresh(account)

        posted_total = await self.ledger_repo.posted_total(account_id)
        result = ReconciliationResult(
            account_id=account_id,
            balance=to_money(account.balance),
            posted_total=posted_total,
        )
        if not result.is_consistent:
            self.logger.error(
                "Ledger and balance out of sync",
                extra={
                    "account_id": account_id,
                    "balance": str(result.balance),
                    "posted_total": str(posted_total),
                },
            )
        return result

    async def get_history(
        self,
        account_id: int | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TransactionPage:
        """
        Paginated transaction history, newest first.

        Args:
            account_id: Account filter; None for the platform-wide log
            page: Page number (1-indexed)
            limit: Page size (defaults to settings.transactions_page_size)

        Returns:
            TransactionPage
        """
        limit = limit or settings.transactions_page_size
        page = max(page, 1)
        filters = {"account_id": account_id} if account_id is not None else {}

        entries, total = await self.ledger_repo.find_paginated(
            page=page, per_page=limit, **filters
        )
        return TransactionPage(
            transactions=[LedgerEntryView.from_entry(e) for e in entries],
            current_page=page,
            total_pages=math.ceil(total / limit) if total else 0,
            total_count=total,
        )
