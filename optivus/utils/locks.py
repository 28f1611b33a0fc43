"""
Per-account lock registry.

Serializes balance mutations on the same account within the process. Row
locks (SELECT ... FOR UPDATE) cover concurrent processes on PostgreSQL.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class AccountLockRegistry:
    """
    asyncio.Lock per account id, kept only while in use.

    A lock is created on first use and dropped once no task holds or waits
    for it, so the registry stays as small as the set of busy accounts.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, account_id: int) -> AsyncIterator[None]:
        """
        Hold the lock for one account.

        Usage:
            async with account_locks.hold(account_id):
                ...

        Args:
            account_id: Account whose balance will be mutated
        """
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        self._users[account_id] = self._users.get(account_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[account_id] -= 1
            if not self._users[account_id]:
                del self._users[account_id]
                del self._locks[account_id]

    def users(self, account_id: int) -> int:
        """Tasks holding or waiting for the account lock."""
        return self._users.get(account_id, 0)

    def __len__(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        """Forget all locks (tests only; never while locks are held)."""
        self._locks.clear()
        self._users.clear()


# Process-wide registry
account_locks = AccountLockRegistry()
