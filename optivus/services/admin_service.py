"""
Admin Service.

Administrative control surface: balance corrections, account and
withdrawal gates, the withdrawal and KYC queues and platform statistics.
Every mutation requires an admin account and is written to the audit
trail.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.config.constants import CENT, PLATFORM_WITHDRAWALS_PAUSED
from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import (
    AccountRole,
    AccountStatus,
    AdminActionType,
    LedgerEntryKind,
    LedgerEntryStatus,
    WithdrawalGate,
)
from optivus.repositories.admin_action_repository import AdminActionRepository
from optivus.repositories.ledger_repository import LedgerRepository
from optivus.repositories.platform_setting_repository import (
    PlatformSettingRepository,
)
from optivus.repositories.withdrawal_repository import WithdrawalRepository
from optivus.services.base_service import BaseService, transaction
from optivus.services.kyc_service import KycDecision, KycQueueItem, KycService
from optivus.services.ledger_service import LedgerService, TransactionPage
from optivus.services.withdrawal import WithdrawalResolution
from optivus.services.withdrawal_service import (
    PendingWithdrawalView,
    WithdrawalService,
)
from optivus.utils.exceptions import (
    AccountNotActive,
    InvalidAmount,
    InvalidStatus,
    NegativeBalance,
)
from optivus.utils.money import format_money, parse_amount, to_money
from optivus.utils.validation import sanitize_input, validate_choice

# Statuses an admin may set; inactive only precedes activation
ADMIN_ACCOUNT_STATUSES = (AccountStatus.ACTIVE, AccountStatus.FROZEN)


@dataclass
class AccountSummary:
    """Row of the admin account list."""

    id: int
    username: str
    name: str
    email: str
    status: str
    kyc_status: str
    withdrawal_status: str
    balance: Decimal
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            id=account.id,
            username=account.username,
            name=account.full_name,
            email=account.email,
            status=account.status,
            kyc_status=account.kyc_status,
            withdrawal_status=account.withdrawal_status,
            balance=to_money(account.balance),
            created_at=account.created_at,
        )


@dataclass
class AccountPage:
    """One page of the admin account list."""

    accounts: list[AccountSummary]
    current_page: int
    total_pages: int
    total_count: int


@dataclass
class BalanceAdjustment:
    """Result of an admin balance correction."""

    account_id: int
    old_balance: Decimal
    new_balance: Decimal
    entry_id: int | None


@dataclass
class PlatformStats:
    """Platform-wide figures for the admin dashboard."""

    total_users: int
    active_users: int
    total_commissions: Decimal
    pending_withdrawals: int
    treasury_balance: Decimal
    withdrawals_paused: bool


class AdminService(BaseService):
    """
    Admin operations.

    Delegates queue resolution to WithdrawalService and KycService and
    posts balance changes through LedgerService.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize admin service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.ledger = LedgerService(session)
        self.ledger_repo = LedgerRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.action_repo = AdminActionRepository(session)
        self.platform_repo = PlatformSettingRepository(session)
        self.withdrawals = WithdrawalService(session)
        self.kyc = KycService(session)

    # =========================================================================
    # Balance
    # =========================================================================

    async def adjust_balance(
        self, admin_id: int, account_id: int, new_balance: Decimal | str
    ) -> BalanceAdjustment:
        """
        Set balance to an exact value via an Adjustment entry.

        Args:
            admin_id: Acting admin
            account_id: Target account
            new_balance: Desired balance

        Returns:
            BalanceAdjustment (entry_id is None when nothing changed)

        Raises:
            NotAuthorized: Caller is not an admin
            NegativeBalance: New balance below zero
            InvalidAmount: Not a number with at most two decimals
        """
        await self.require_admin(admin_id)
        target = self._parse_balance(new_balance)

        async with self.account_transaction(account_id) as account:
            old_balance = to_money(account.balance)
            delta = target - old_balance
            entry_id = None
            if delta != 0:
                symbol = settings.currency_symbol
                entry = await self.ledger.post_entry(
                    account,
                    kind=LedgerEntryKind.ADJUSTMENT,
                    amount=delta,
                    description=(
                        f"Admin adjustment from {format_money(old_balance, symbol)} "
                        f"to {format_money(target, symbol)}"
                    ),
                )
                entry_id = entry.id
                await self.action_repo.log_action(
                    admin_id,
                    AdminActionType.ADJUST_BALANCE,
                    account_id,
                    {"old_balance": str(old_balance), "new_balance": str(target)},
                )

        self.logger.info(
            "Balance adjusted",
            extra={
                "admin_id": admin_id,
                "account_id": account_id,
                "old_balance": str(old_balance),
                "new_balance": str(target),
            },
        )
        return BalanceAdjustment(
            account_id=account_id,
            old_balance=old_balance,
            new_balance=target,
            entry_id=entry_id,
        )

    async def grant_bonus(
        self, admin_id: int, account_id: int, amount: Decimal | str, reason: str
    ) -> int:
        """
        Credit a Bonus entry.

        Args:
            admin_id: Acting admin
            account_id: Receiving account
            amount: Positive amount
            reason: Shown in the transaction history

        Returns:
            Ledger entry ID

        Raises:
            InvalidAmount: Not a positive amount with at most two decimals
        """
        await self.require_admin(admin_id)
        parsed = parse_amount(amount)
        if parsed is None:
            raise InvalidAmount(amount=str(amount))
        reason = sanitize_input(reason, 200) or "Bonus"

        async with self.account_transaction(account_id) as account:
            entry = await self.ledger.post_entry(
                account,
                kind=LedgerEntryKind.BONUS,
                amount=parsed,
                description=reason,
            )
            entry_id = entry.id
            await self.action_repo.log_action(
                admin_id,
                AdminActionType.GRANT_BONUS,
                account_id,
                {"amount": str(parsed), "reason": reason},
            )

        self.logger.info(
            "Bonus granted",
            extra={"admin_id": admin_id, "account_id": account_id, "amount": str(parsed)},
        )
        return entry_id

    # =========================================================================
    # Account and withdrawal gates
    # =========================================================================

    async def set_account_status(
        self, admin_id: int, account_id: int, status: AccountStatus | str
    ) -> Account:
        """
        Freeze or unfreeze an account.

        Inactive is reserved for accounts awaiting their entry fee and is
        never set by an admin.

        Raises:
            InvalidStatus: Status other than active or frozen
            AccountNotActive: Account has not paid its entry fee yet
        """
        await self.require_admin(admin_id)
        is_valid, status, error = validate_choice(
            status, AccountStatus, ADMIN_ACCOUNT_STATUSES
        )
        if not is_valid:
            raise InvalidStatus(error, field="status")

        async with self.account_transaction(account_id) as account:
            previous = account.status
            if previous == AccountStatus.INACTIVE.value:
                raise AccountNotActive(
                    "Account has not been activated yet", account_id=account_id
                )
            account.status = status.value
            await self.action_repo.log_action(
                admin_id,
                AdminActionType.SET_ACCOUNT_STATUS,
                account_id,
                {"from": previous, "to": status.value},
            )

        self.logger.info(
            "Account status changed",
            extra={"admin_id": admin_id, "account_id": account_id, "status": status.value},
        )
        return account

    async def set_withdrawal_status(
        self, admin_id: int, account_id: int, status: WithdrawalGate | str
    ) -> Account:
        """Open or pause withdrawals for one account."""
        await self.require_admin(admin_id)
        is_valid, status, error = validate_choice(status, WithdrawalGate)
        if not is_valid:
            raise InvalidStatus(error, field="withdrawal_status")

        async with self.account_transaction(account_id) as account:
            previous = account.withdrawal_status
            account.withdrawal_status = status.value
            await self.action_repo.log_action(
                admin_id,
                AdminActionType.SET_WITHDRAWAL_STATUS,
                account_id,
                {"from": previous, "to": status.value},
            )

        self.logger.info(
            "Withdrawal status changed",
            extra={"admin_id": admin_id, "account_id": account_id, "status": status.value},
        )
        return account

    @transaction
    async def set_platform_withdrawals_paused(self, admin_id: int, paused: bool) -> None:
        """Pause or resume withdrawals for every account."""
        await self.require_admin(admin_id)
        await self.platform_repo.set_flag(PLATFORM_WITHDRAWALS_PAUSED, paused)
        await self.action_repo.log_action(
            admin_id,
            AdminActionType.SET_PLATFORM_WITHDRAWALS,
            details={"paused": paused},
        )
        self.logger.warning(
            "Platform withdrawals paused" if paused else "Platform withdrawals resumed",
            extra={"admin_id": admin_id},
        )

    # =========================================================================
    # Queues
    # =========================================================================

    async def list_pending_withdrawals(self, admin_id: int) -> list[PendingWithdrawalView]:
        """Pending withdrawal queue, newest first."""
        await self.require_admin(admin_id)
        return await self.withdrawals.list_pending()

    async def resolve_withdrawal(
        self, admin_id: int, request_id: int, approve: bool
    ) -> WithdrawalResolution:
        """
        Approve or deny a pending withdrawal.

        Raises:
            WithdrawalNotFound: Unknown request
            AlreadyResolved: Request already resolved
        """
        await self.require_admin(admin_id)
        if approve:
            resolution = await self.withdrawals.approve(request_id, admin_id)
            action = AdminActionType.APPROVE_WITHDRAWAL
        else:
            resolution = await self.withdrawals.deny(request_id, admin_id)
            action = AdminActionType.DENY_WITHDRAWAL

        await self._audit(
            admin_id,
            action,
            resolution.account_id,
            {"request_id": request_id, "amount": str(resolution.amount)},
        )
        return resolution

    async def list_pending_kyc(self, admin_id: int) -> list[KycQueueItem]:
        """Pending KYC queue, newest first."""
        await self.require_admin(admin_id)
        return await self.kyc.list_pending()

    async def decide_kyc(
        self,
        admin_id: int,
        account_id: int,
        approve: bool,
        reason: str | None = None,
    ) -> KycDecision:
        """
        Approve or reject a pending KYC submission.

        Raises:
            RequestNotFound: No pending submission
        """
        await self.require_admin(admin_id)
        if approve:
            decision = await self.kyc.approve(account_id)
            action = AdminActionType.APPROVE_KYC
        else:
            decision = await self.kyc.reject(account_id, reason)
            action = AdminActionType.REJECT_KYC

        await self._audit(
            admin_id, action, account_id, {"reason": decision.rejection_reason}
        )
        return decision

    # =========================================================================
    # Reporting
    # =========================================================================

    async def list_accounts(
        self,
        admin_id: int,
        page: int = 1,
        per_page: int = 20,
        status: AccountStatus | str | None = None,
    ) -> AccountPage:
        """Member accounts, newest first."""
        await self.require_admin(admin_id)
        filters = {"role": AccountRole.USER.value}
        if status is not None:
            is_valid, status, error = validate_choice(status, AccountStatus)
            if not is_valid:
                raise InvalidStatus(error, field="status")
            filters["status"] = status.value

        page = max(page, 1)
        accounts, total = await self.account_repo.find_paginated(
            page=page, per_page=per_page, **filters
        )
        return AccountPage(
            accounts=[AccountSummary.from_account(a) for a in accounts],
            current_page=page,
            total_pages=math.ceil(total / per_page) if total else 0,
            total_count=total,
        )

    async def platform_stats(self, admin_id: int) -> PlatformStats:
        """Totals for the admin dashboard."""
        await self.require_admin(admin_id)
        treasury = await self.account_repo.get_treasury()
        if treasury is not None:
            await self.session.refresh(treasury)

        return PlatformStats(
            total_users=await self.account_repo.count(role=AccountRole.USER.value),
            active_users=await self.account_repo.count(
                role=AccountRole.USER.value, status=AccountStatus.ACTIVE.value
            ),
            total_commissions=await self.ledger_repo.sum_amounts(
                kinds=[LedgerEntryKind.COMMISSION],
                status=LedgerEntryStatus.COMPLETED,
            ),
            pending_withdrawals=await self.withdrawal_repo.count_pending(),
            treasury_balance=to_money(treasury.balance if treasury else None),
            withdrawals_paused=await self.platform_repo.get_flag(
                PLATFORM_WITHDRAWALS_PAUSED
            ),
        )

    async def all_transactions(
        self, admin_id: int, page: int = 1, limit: int | None = None
    ) -> TransactionPage:
        """Platform-wide transaction log, newest first."""
        await self.require_admin(admin_id)
        return await self.ledger.get_history(page=page, limit=limit)

    # =========================================================================
    # Helpers
    # =========================================================================

    @transaction
    async def _audit(
        self,
        admin_id: int,
        action: AdminActionType,
        target_account_id: int | None,
        details: dict[str, object],
    ) -> None:
        await self.action_repo.log_action(admin_id, action, target_account_id, details)

    @staticmethod
    def _parse_balance(value: Decimal | str) -> Decimal:
        try:
            amount = Decimal(str(value))
        except ArithmeticError as e:
            raise InvalidAmount(amount=str(value)) from e
        if not amount.is_finite() or amount != amount.quantize(CENT):
            raise InvalidAmount(amount=str(value))
        if amount < 0:
            raise NegativeBalance(amount=str(value))
        return to_money(amount)
