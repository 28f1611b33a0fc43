"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Default tier schedule
- Account stand-ins for validator checks
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from optivus.models.enums import AccountStatus, KycStatus, WithdrawalGate
from optivus.services.referral.config import TierSchedule


@pytest.fixture
def schedule():
    """
    Default tier schedule: 20% first tier, 0.85 decay, 6 tiers.

    Returns:
        TierSchedule: Schedule for testing
    """
    return TierSchedule(
        tier1_rate=Decimal("0.20"), decay=Decimal("0.85"), depth=6
    )


@pytest.fixture
def account_stub():
    """
    Plain object with the account fields the withdrawal checks read.

    Default values:
    - active, withdrawals open, KYC unverified
    - balance 500.00, no PIN, no 2FA, no payout bindings

    Returns:
        SimpleNamespace: Account stand-in
    """
    return SimpleNamespace(
        id=7,
        status=AccountStatus.ACTIVE.value,
        withdrawal_status=WithdrawalGate.ACTIVE.value,
        kyc_status=KycStatus.UNVERIFIED.value,
        balance=Decimal("500.00"),
        has_withdrawal_pin=False,
        pin_attempts=0,
        pin_locked_until=None,
        is_2fa_enabled=False,
        two_factor_secret=None,
        payout_connected=False,
        paypal_email=None,
        wallet_network=None,
        wallet_address=None,
        verify_withdrawal_pin=lambda pin: False,
    )


@pytest.fixture
def settings_repo():
    """Platform settings repository with withdrawals open."""
    repo = AsyncMock()
    repo.get_flag = AsyncMock(return_value=False)
    return repo
