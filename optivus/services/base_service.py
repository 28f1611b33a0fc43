"""
Base service class.

Provides common functionality for all service classes including session
management, logging, and the per-account transaction boundary.
"""

import functools
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.account import Account
from optivus.models.enums import AccountRole
from optivus.repositories.account_repository import AccountRepository
from optivus.utils.exceptions import AccountNotFound, NotAuthorized, OptivusError
from optivus.utils.locks import account_locks


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management
    - Logging with bound service context
    - Per-account serialized transactions
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)
        self.account_repo = AccountRepository(session)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    async def get_account(self, account_id: int) -> Account:
        """
        Get account or raise.

        Raises:
            AccountNotFound: If no such account
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise AccountNotFound(account_id=account_id)
        return account

    async def require_admin(self, admin_id: int) -> Account:
        """
        Load the acting account and check its role.

        Raises:
            NotAuthorized: Missing account or not an admin
        """
        admin = await self.account_repo.get_by_id(admin_id)
        if admin is None or admin.role != AccountRole.ADMIN.value:
            self.logger.warning(
                "Admin operation refused", extra={"account_id": admin_id}
            )
            raise NotAuthorized(account_id=admin_id)
        return admin

    @asynccontextmanager
    async def account_transaction(self, account_id: int) -> AsyncIterator[Account]:
        """
        Serialized transaction on one account.

        Holds the in-process account lock, loads the account row with
        SELECT ... FOR UPDATE, yields it, and commits on success or rolls
        back on any exception. All balance mutations go through here.

        Usage:
            async with self.account_transaction(account_id) as account:
                account.balance += amount

        Args:
            account_id: Account to lock

        Raises:
            AccountNotFound: If no such account
        """
        async with account_locks.hold(account_id):
            try:
                account = await self.account_repo.get_for_update(account_id)
                if account is None:
                    raise AccountNotFound(account_id=account_id)
                yield account
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to wrap method in transaction with automatic commit/rollback.

    Commits on success, rolls back on exception. Business errors are
    logged at warning level, unexpected ones at error level with traceback.

    Usage:
        @transaction
        async def my_service_method(self, ...):
            # Your code here
            pass

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except OptivusError as e:
            await self.rollback()
            self.logger.warning(
                f"{func.__name__} rejected: {e.code}",
                extra={"function": func.__name__, "error": e.message},
            )
            raise
        except Exception as e:
            await self.rollback()
            self.logger.error(
                f"Transaction failed in {func.__name__}",
                extra={
                    "error": str(e),
                    "function": func.__name__,
                },
                exc_info=True,
            )
            raise

    return wrapper
