"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for tests; set before the package reads settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_optivus.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import bcrypt
import pytest
import pytest_asyncio
from sqlalchemy import select

from optivus.models import (
    Account,
    AccountRole,
    AccountStatus,
    KycStatus,
    LedgerEntryKind,
)
from optivus.services.ledger_service import LedgerService
from optivus.utils.database import create_engine, create_session_maker, init_models
from optivus.utils.locks import account_locks
from optivus.utils.money import to_money

TEST_PASSWORD = "correct-horse-42"
TEST_PIN = "1234"

# Low cost factor keeps fixture accounts fast; checkpw reads the cost from the hash
_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()
_PIN_HASH = bcrypt.hashpw(TEST_PIN.encode(), bcrypt.gensalt(rounds=4)).decode()


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Throw-away SQLite database per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'optivus_test.db'}", echo=False)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Database session bound to the per-test database."""
    account_locks.clear()
    session_maker = create_session_maker(engine)
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_account(session):
    """
    Factory inserting accounts directly.

    Active accounts get a referral code; every account gets the test
    password and, unless disabled, the test withdrawal PIN.
    """
    counter = itertools.count(1)

    async def _make(
        sponsor: Account | None = None,
        status: AccountStatus = AccountStatus.ACTIVE,
        role: AccountRole = AccountRole.USER,
        with_pin: bool = True,
        **fields,
    ) -> Account:
        n = next(counter)
        data = {
            "first_name": "Member",
            "last_name": f"No{n}",
            "username": f"member{n}",
            "email": f"member{n}@example.com",
            "password_hash": _PASSWORD_HASH,
            "role": role.value,
            "status": status.value,
            "sponsor_id": sponsor.id if sponsor else None,
            "referral_code": f"MEMBER{n}X" if status is AccountStatus.ACTIVE else None,
            "withdrawal_pin_hash": _PIN_HASH if with_pin else None,
        }
        data.update(fields)
        account = Account(**data)
        session.add(account)
        await session.commit()
        return account

    return _make


@pytest.fixture
def make_chain(make_account):
    """Factory for a linear sponsor chain: [root, member1, ..., memberN]."""

    async def _make(length: int) -> list[Account]:
        chain = [await make_account()]
        for _ in range(length):
            chain.append(await make_account(sponsor=chain[-1]))
        return chain

    return _make


@pytest.fixture
def fund(session):
    """Credit an account through the ledger (Bonus entry)."""

    async def _fund(account_id: int, amount: str | Decimal) -> None:
        ledger = LedgerService(session)
        async with ledger.account_transaction(account_id) as account:
            await ledger.post_entry(
                account,
                kind=LedgerEntryKind.BONUS,
                amount=Decimal(str(amount)),
                description="Test funding",
            )

    return _fund


@pytest.fixture
def balance_of(session):
    """Read the stored balance without touching cached instances."""

    async def _balance(account_id: int) -> Decimal:
        result = await session.execute(
            select(Account.balance).where(Account.id == account_id)
        )
        return to_money(result.scalar_one())

    return _balance


@pytest_asyncio.fixture
async def admin(make_account):
    """Admin account."""
    return await make_account(role=AccountRole.ADMIN, with_pin=False)


@pytest_asyncio.fixture
async def crypto_member(make_account, fund):
    """Active, unverified member with a bound wallet and £500 balance."""
    account = await make_account(
        wallet_network="TRC20",
        wallet_address="TXyz1234567890abcdefghijkLMNOP",
        kyc_status=KycStatus.UNVERIFIED.value,
    )
    await fund(account.id, "500.00")
    return account
