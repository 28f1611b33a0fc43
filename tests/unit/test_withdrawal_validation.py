"""
Unit tests for withdrawal validation logic.

Tests cover:
- Withdrawal gates (static kill switch, platform flag, account gate)
- Minimum amount and balance checks
- PIN and lockout handling
- Destination resolution per method
- KYC gates (fiat requires KYC, unverified crypto cap)
- Guard ordering in the validator
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pyotp
import pytest

from optivus.config.settings import settings
from optivus.models.enums import AccountStatus, KycStatus, WithdrawalGate, WithdrawalMethod
from optivus.services.withdrawal.withdrawal_method_checks import STRIPE_DESTINATION
from optivus.services.withdrawal.withdrawal_validator_core import (
    WithdrawalDraft,
    WithdrawalValidator,
)
from optivus.utils.datetime_utils import utc_now
from optivus.utils.exceptions import (
    AccountFrozen,
    AccountNotActive,
    CryptoLimitExceeded,
    FiatRequiresKyc,
    InsufficientBalance,
    InvalidAmount,
    InvalidPin,
    InvalidTwoFactorToken,
    MissingDestination,
    NoWithdrawalPin,
    PayoutMethodRequired,
    PinLocked,
    WithdrawalsPaused,
)


@pytest.fixture
def validator(mock_session, settings_repo):
    validator = WithdrawalValidator(mock_session)
    validator.settings_repo = settings_repo
    return validator


@pytest.fixture
def pin_account(account_stub):
    """Account stub whose PIN is 1234 and wallet is bound."""
    account_stub.has_withdrawal_pin = True
    account_stub.verify_withdrawal_pin = lambda pin: pin == "1234"
    account_stub.wallet_network = "TRC20"
    account_stub.wallet_address = "TWalletAddress0001"
    return account_stub


def _draft(amount="50.00", method=WithdrawalMethod.CRYPTO, pin="1234", **kwargs):
    return WithdrawalDraft(account_id=7, amount=amount, method=method, pin=pin, **kwargs)


class TestWithdrawalGates:
    """Test platform and account withdrawal gates."""

    @pytest.mark.asyncio
    async def test_open(self, validator, account_stub):
        """No gate closed."""
        is_valid, error = await validator.check_withdrawals_paused(account_stub)
        assert is_valid and error is None

    @pytest.mark.asyncio
    async def test_platform_flag(self, validator, settings_repo, account_stub):
        """Platform flag pauses every account."""
        settings_repo.get_flag.return_value = True
        is_valid, error = await validator.check_withdrawals_paused(account_stub)
        assert not is_valid
        assert isinstance(error, WithdrawalsPaused)
        assert error.context["scope"] == "platform"

    @pytest.mark.asyncio
    async def test_emergency_stop(self, validator, account_stub):
        """Static kill switch pauses every account."""
        with patch.object(settings, "emergency_stop_withdrawals", True):
            is_valid, error = await validator.check_withdrawals_paused(account_stub)
        assert isinstance(error, WithdrawalsPaused)

    @pytest.mark.asyncio
    async def test_account_gate(self, validator, account_stub):
        """Account gate pauses one account."""
        account_stub.withdrawal_status = WithdrawalGate.PAUSED.value
        is_valid, error = await validator.check_withdrawals_paused(account_stub)
        assert isinstance(error, WithdrawalsPaused)
        assert error.context["scope"] == "account"


class TestAccountStatusCheck:
    """Test account status check."""

    def test_frozen(self, validator, account_stub):
        """Frozen accounts cannot withdraw."""
        account_stub.status = AccountStatus.FROZEN.value
        assert isinstance(validator.check_account_status(account_stub)[1], AccountFrozen)

    def test_inactive(self, validator, account_stub):
        """Unpaid accounts cannot withdraw."""
        account_stub.status = AccountStatus.INACTIVE.value
        assert isinstance(validator.check_account_status(account_stub)[1], AccountNotActive)


class TestAmountAndBalance:
    """Test amount and balance checks."""

    @pytest.mark.parametrize("raw", ["0", "-10", "10.001", "abc", "9.99"])
    def test_invalid_amounts(self, validator, raw):
        """Non-positive, sub-penny, non-numeric and below-minimum amounts."""
        amount, error = validator.check_amount(raw)
        assert amount is None
        assert isinstance(error, InvalidAmount)

    def test_minimum_accepted(self, validator):
        """The minimum itself is allowed."""
        assert validator.check_amount("10.00") == (Decimal("10.00"), None)

    def test_exact_balance(self, validator, account_stub):
        """Withdrawing the whole balance is allowed."""
        assert validator.check_balance(account_stub, Decimal("500.00")) == (True, None)

    def test_over_balance(self, validator, account_stub):
        """One penny over the balance is refused."""
        is_valid, error = validator.check_balance(account_stub, Decimal("500.01"))
        assert isinstance(error, InsufficientBalance)


class TestPinCheck:
    """Test withdrawal PIN check."""

    def test_no_pin(self, validator, account_stub):
        """Accounts without a PIN cannot withdraw."""
        assert isinstance(validator.check_pin(account_stub, "1234")[1], NoWithdrawalPin)

    def test_wrong_pin(self, validator, pin_account):
        """Wrong PIN is refused."""
        assert isinstance(validator.check_pin(pin_account, "9999")[1], InvalidPin)

    def test_locked(self, validator, pin_account):
        """Active lockout refuses even the right PIN."""
        pin_account.pin_locked_until = utc_now() + timedelta(minutes=5)
        is_valid, error = validator.check_pin(pin_account, "1234")
        assert isinstance(error, PinLocked)

    def test_expired_lock_is_cleared(self, validator, pin_account):
        """Expired lockout resets the attempt counter."""
        pin_account.pin_attempts = 5
        pin_account.pin_locked_until = utc_now() - timedelta(minutes=1)
        assert validator.check_pin(pin_account, "1234") == (True, None)
        assert pin_account.pin_attempts == 0
        assert pin_account.pin_locked_until is None


class TestTwoFactorCheck:
    """Test 2FA token check."""

    def test_disabled_skips(self, validator, account_stub):
        """No token needed without 2FA."""
        assert validator.check_two_factor(account_stub, None) == (True, None)

    def test_valid_token(self, validator, account_stub):
        """Current TOTP token passes."""
        secret = pyotp.random_base32()
        account_stub.is_2fa_enabled = True
        account_stub.two_factor_secret = secret
        assert validator.check_two_factor(account_stub, pyotp.TOTP(secret).now())[0]

    def test_missing_token(self, validator, account_stub):
        """Missing token fails when 2FA is on."""
        account_stub.is_2fa_enabled = True
        account_stub.two_factor_secret = pyotp.random_base32()
        error = validator.check_two_factor(account_stub, None)[1]
        assert isinstance(error, InvalidTwoFactorToken)


class TestDestination:
    """Test destination resolution."""

    def test_crypto_explicit(self, validator, account_stub):
        """Supplied network and address are used."""
        draft = _draft(network="erc20", address="0xabc")
        assert validator.resolve_destination(account_stub, draft) == (("ERC20", "0xabc"), None)

    def test_crypto_falls_back_to_bound_wallet(self, validator, pin_account):
        """Bound wallet is used when nothing is supplied."""
        destination, _ = validator.resolve_destination(pin_account, _draft())
        assert destination == ("TRC20", "TWalletAddress0001")

    def test_crypto_missing(self, validator, account_stub):
        """No address at all."""
        assert isinstance(
            validator.resolve_destination(account_stub, _draft())[1], MissingDestination
        )

    def test_stripe_requires_connection(self, validator, account_stub):
        """Stripe needs a connected payout account."""
        draft = _draft(method=WithdrawalMethod.STRIPE)
        assert isinstance(
            validator.resolve_destination(account_stub, draft)[1], PayoutMethodRequired
        )
        account_stub.payout_connected = True
        assert validator.resolve_destination(account_stub, draft) == (
            (None, STRIPE_DESTINATION),
            None,
        )

    def test_paypal_requires_email(self, validator, account_stub):
        """PayPal needs a bound e-mail."""
        draft = _draft(method=WithdrawalMethod.PAYPAL)
        assert isinstance(
            validator.resolve_destination(account_stub, draft)[1], PayoutMethodRequired
        )


class TestKycLimits:
    """Test KYC-dependent limits."""

    def test_fiat_requires_kyc(self, validator, account_stub):
        """Unverified accounts cannot use fiat methods."""
        error = validator.check_kyc_limits(
            account_stub, WithdrawalMethod.PAYPAL, Decimal("20")
        )[1]
        assert isinstance(error, FiatRequiresKyc)

    def test_unverified_crypto_over_cap(self, validator, account_stub):
        """£250 exceeds the £200 unverified cap."""
        error = validator.check_kyc_limits(
            account_stub, WithdrawalMethod.CRYPTO, Decimal("250.00")
        )[1]
        assert isinstance(error, CryptoLimitExceeded)

    @pytest.mark.parametrize("amount", ["150.00", "200.00"])
    def test_unverified_crypto_within_cap(self, validator, account_stub, amount):
        """Up to the cap is fine."""
        assert validator.check_kyc_limits(
            account_stub, WithdrawalMethod.CRYPTO, Decimal(amount)
        ) == (True, None)

    def test_verified_has_no_cap(self, validator, account_stub):
        """Verified accounts are not capped."""
        account_stub.kyc_status = KycStatus.VERIFIED.value
        assert validator.check_kyc_limits(
            account_stub, WithdrawalMethod.CRYPTO, Decimal("450.00")
        )[0]


class TestValidatorOrdering:
    """Test that guards run in order and stop at the first failure."""

    @pytest.mark.asyncio
    async def test_success(self, validator, pin_account):
        """Valid crypto request resolves amount and destination."""
        result = await validator.validate_withdrawal_request(pin_account, _draft())
        assert result.is_valid
        assert result.amount == Decimal("50.00")
        assert result.network == "TRC20"
        assert result.destination == "TWalletAddress0001"

    @pytest.mark.asyncio
    async def test_pause_reported_before_pin(self, validator, settings_repo, account_stub):
        """Paused platform wins over a missing PIN."""
        settings_repo.get_flag.return_value = True
        result = await validator.validate_withdrawal_request(account_stub, _draft())
        assert result.error_code == "WITHDRAWALS_PAUSED"

    @pytest.mark.asyncio
    async def test_pin_checked_before_balance(self, validator, pin_account):
        """Wrong PIN is reported even when the balance is short."""
        result = await validator.validate_withdrawal_request(
            pin_account, _draft(amount="900.00", pin="0000")
        )
        assert result.error_code == "INVALID_PIN"

    @pytest.mark.asyncio
    async def test_cap_checked_before_balance(self, validator, pin_account):
        """£250 unverified crypto is capped before the balance check."""
        pin_account.balance = Decimal("100.00")
        result = await validator.validate_withdrawal_request(
            pin_account, _draft(amount="250.00")
        )
        assert isinstance(result.error, CryptoLimitExceeded)
