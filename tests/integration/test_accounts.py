"""
Integration tests for account features.

Tests cover:
- Registration and bootstrap accounts
- Authentication with optional 2FA
- Withdrawal PIN setup via e-mailed code
- Password change, password reset and e-mail verification
- Two-factor enrolment
- Payout bindings and profile updates
"""

from datetime import timedelta
from decimal import Decimal

import pyotp
import pytest

from optivus.models import AccountRole, AccountStatus
from optivus.services.account import AccountService, RegistrationDetails
from optivus.services.withdrawal_service import WithdrawalService
from optivus.utils.exceptions import (
    EmailAlreadyVerified,
    EmailTaken,
    InvalidCredentials,
    InvalidEmail,
    InvalidPinFormat,
    InvalidReferralCode,
    InvalidTwoFactorToken,
    InvalidUsername,
    InvalidVerificationCode,
    MissingDestination,
    TwoFactorNotPending,
    TwoFactorRequired,
    UsernameTaken,
    WeakPassword,
)


def _details(referral_code, **overrides):
    data = {
        "first_name": "Alex",
        "last_name": "Smith",
        "username": "alex_s",
        "email": "Alex@Example.com",
        "password": "s3cure-password",
        "referral_code": referral_code,
    }
    data.update(overrides)
    return RegistrationDetails(**data)


class TestRegistration:
    """Tests for register and bootstrap accounts."""

    @pytest.mark.asyncio
    async def test_register(self, session, make_account):
        """New account is inactive and remembers the sponsor's code."""
        sponsor = await make_account()
        code = sponsor.referral_code

        account = await AccountService(session).register(_details(code.lower()))

        assert account.status == AccountStatus.INACTIVE.value
        assert account.email == "alex@example.com"
        assert account.pending_sponsor_code == code
        assert account.sponsor_id is None
        assert account.referral_code is None
        assert account.verify_password("s3cure-password")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"email": "nope"}, InvalidEmail),
            ({"username": "a"}, InvalidUsername),
            ({"password": "short"}, WeakPassword),
        ],
    )
    async def test_invalid_input(self, session, make_account, overrides, error):
        """Bad fields are rejected with named errors."""
        sponsor = await make_account()
        with pytest.raises(error):
            await AccountService(session).register(_details(sponsor.referral_code, **overrides))

    @pytest.mark.asyncio
    async def test_duplicates(self, session, make_account):
        """Username and e-mail must be unique."""
        sponsor = await make_account()
        code = sponsor.referral_code
        service = AccountService(session)
        await service.register(_details(code))

        with pytest.raises(UsernameTaken):
            await service.register(_details(code, username="ALEX_S", email="other@example.com"))
        with pytest.raises(EmailTaken):
            await service.register(_details(code, username="someone"))

    @pytest.mark.asyncio
    async def test_invalid_referral_code(self, session):
        """Registration needs a valid sponsor code."""
        with pytest.raises(InvalidReferralCode):
            await AccountService(session).register(_details("UNKNOWN"))

    @pytest.mark.asyncio
    async def test_username_availability(self, session, make_account):
        """Taken, free and malformed usernames."""
        taken = await make_account()
        service = AccountService(session)
        assert not await service.is_username_available(taken.username.upper())
        assert await service.is_username_available("fresh_name")
        assert not await service.is_username_available("x")

    @pytest.mark.asyncio
    async def test_bootstrap_root_is_idempotent(self, session):
        """Root account owns the root code and is created once."""
        service = AccountService(session)
        root = await service.bootstrap_root("Optivus", "Root", "optivus", "root@example.com", "root-password")
        again = await service.bootstrap_root("Optivus", "Root", "other", "other@example.com", "root-password")

        assert again.id == root.id
        assert root.referral_code == "OPTIVUS"
        assert root.status == AccountStatus.ACTIVE.value
        assert root.sponsor_id is None

    @pytest.mark.asyncio
    async def test_create_admin(self, session):
        """Admin accounts sit outside the referral forest."""
        admin = await AccountService(session).create_admin(
            "Ada", "Admin", "ada", "ada@example.com", "admin-password"
        )
        assert admin.role == AccountRole.ADMIN.value
        assert admin.referral_code is None


class TestAuthentication:
    """Tests for authenticate."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, session, make_account):
        """Right e-mail and password."""
        account = await make_account()
        result = await AccountService(session).authenticate(
            account.email.upper(), "correct-horse-42"
        )
        assert result.id == account.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("member1@example.com", "wrong-pass"), ("ghost@example.com", "correct-horse-42")])
    async def test_invalid_credentials(self, session, make_account, email, password):
        """Wrong password or unknown e-mail look the same."""
        await make_account()
        with pytest.raises(InvalidCredentials):
            await AccountService(session).authenticate(email, password)

    @pytest.mark.asyncio
    async def test_treasury_cannot_log_in(self, session):
        """The treasury has no usable credentials."""
        service = AccountService(session)
        treasury = await service.account_repo.get_or_create_treasury()
        await session.commit()
        with pytest.raises(InvalidCredentials):
            await service.authenticate(treasury.email, "!")

    @pytest.mark.asyncio
    async def test_two_factor(self, session, make_account):
        """2FA accounts need a valid token."""
        secret = pyotp.random_base32()
        account = await make_account(two_factor_secret=secret, is_2fa_enabled=True)
        email = account.email
        service = AccountService(session)

        with pytest.raises(TwoFactorRequired):
            await service.authenticate(email, "correct-horse-42")
        with pytest.raises(InvalidTwoFactorToken):
            await service.authenticate(email, "correct-horse-42", "000000")
        result = await service.authenticate(email, "correct-horse-42", pyotp.TOTP(secret).now())
        assert result.email == email

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["x" * 100, "correct-horse-42" + "x" * 60])
    async def test_overlong_password(self, session, make_account, password):
        """Passwords longer than bcrypt accepts are wrong credentials."""
        account = await make_account()
        with pytest.raises(InvalidCredentials):
            await AccountService(session).authenticate(account.email, password)


class TestWithdrawalPin:
    """Tests for the PIN setup flow."""

    @pytest.mark.asyncio
    async def test_set_pin_with_code(self, session, make_account, fund):
        """Code from the e-mail authorizes the new PIN."""
        account = await make_account(with_pin=False, wallet_network="ERC20", wallet_address="0xabc123")
        account_id = account.id
        await fund(account_id, "50.00")
        service = AccountService(session)

        issued = await service.request_pin_code(account_id)
        assert len(issued.code) == 6 and issued.code.isdigit()
        assert issued.notify

        await service.set_withdrawal_pin(account_id, issued.code, "8642")

        receipt = await WithdrawalService(session).request_withdrawal(
            account_id, "20.00", "crypto", pin="8642"
        )
        assert receipt.balance_after == Decimal("30.00")

        # Codes are single use
        with pytest.raises(InvalidVerificationCode):
            await service.set_withdrawal_pin(account_id, issued.code, "1357")

    @pytest.mark.asyncio
    async def test_wrong_code(self, session, make_account):
        """Wrong code is refused."""
        account = await make_account(with_pin=False)
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_pin_code(account_id)
        wrong = "000000" if issued.code != "000000" else "111111"
        with pytest.raises(InvalidVerificationCode):
            await service.set_withdrawal_pin(account_id, wrong, "8642")

    @pytest.mark.asyncio
    async def test_expired_code(self, session, make_account):
        """Codes expire."""
        account = await make_account(with_pin=False)
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_pin_code(account_id)

        stored = await service.get_account(account_id)
        stored.pin_code_expires_at = issued.expires_at - timedelta(hours=1)
        await session.commit()

        with pytest.raises(InvalidVerificationCode):
            await service.set_withdrawal_pin(account_id, issued.code, "8642")

    @pytest.mark.asyncio
    async def test_pin_format(self, session, make_account):
        """PIN must be 4-6 digits."""
        account = await make_account(with_pin=False)
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_pin_code(account_id)
        with pytest.raises(InvalidPinFormat):
            await service.set_withdrawal_pin(account_id, issued.code, "12")

    @pytest.mark.asyncio
    async def test_overlong_code(self, session, make_account):
        """An oversized code is refused and the real code stays usable."""
        account = await make_account(with_pin=False)
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_pin_code(account_id)

        with pytest.raises(InvalidVerificationCode):
            await service.set_withdrawal_pin(account_id, "9" * 100, "8642")

        await service.set_withdrawal_pin(account_id, issued.code, "8642")
        stored = await service.get_account(account_id)
        await session.refresh(stored)
        assert stored.verify_withdrawal_pin("8642")


class TestTwoFactorEnrolment:
    """Tests for 2FA enrolment."""

    @pytest.mark.asyncio
    async def test_enable_and_disable(self, session, make_account):
        """Enrol, confirm with a token, then disable."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)

        enrolment = await service.begin_two_factor_enrolment(account_id)
        assert enrolment.provisioning_uri.startswith("otpauth://totp/")
        totp = pyotp.TOTP(enrolment.secret)

        with pytest.raises(InvalidTwoFactorToken):
            await service.confirm_two_factor(account_id, "000000" if totp.now() != "000000" else "111111")
        await service.confirm_two_factor(account_id, totp.now())
        assert (await service.get_account(account_id)).is_2fa_enabled

        with pytest.raises(TwoFactorNotPending):
            await service.begin_two_factor_enrolment(account_id)

        await service.disable_two_factor(account_id, totp.now())
        stored = await service.get_account(account_id)
        assert not stored.is_2fa_enabled
        assert stored.two_factor_secret is None

    @pytest.mark.asyncio
    async def test_confirm_without_enrolment(self, session, make_account):
        """Confirming before enrolment fails."""
        account = await make_account()
        with pytest.raises(TwoFactorNotPending):
            await AccountService(session).confirm_two_factor(account.id, "123456")


class TestPayoutAndProfile:
    """Tests for payout bindings and profile updates."""

    @pytest.mark.asyncio
    async def test_bindings(self, session, make_account):
        """Each payout destination can be bound."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)

        await service.connect_payout_account(account_id)
        await service.set_paypal_email(account_id, "Pay@Example.com")
        bindings = await service.set_crypto_wallet(account_id, "bep20", " 0xwallet ")

        assert bindings.payout_connected
        assert bindings.paypal_email == "pay@example.com"
        assert (bindings.wallet_network, bindings.wallet_address) == ("BEP20", "0xwallet")

    @pytest.mark.asyncio
    async def test_unsupported_network(self, session, make_account):
        """Unknown networks are rejected."""
        account = await make_account()
        with pytest.raises(MissingDestination):
            await AccountService(session).set_crypto_wallet(account.id, "DOGE", "addr")

    @pytest.mark.asyncio
    async def test_update_profile(self, session, make_account):
        """Display name changes."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)
        await service.update_profile(account_id, "Jamie", "Lee")
        assert (await service.get_account(account_id)).full_name == "Jamie Lee"


class TestPasswordManagement:
    """Tests for password change and reset."""

    @pytest.mark.asyncio
    async def test_change_password(self, session, make_account):
        """Current password authorizes the new one."""
        account = await make_account()
        account_id, email = account.id, account.email
        service = AccountService(session)

        await service.change_password(account_id, "correct-horse-42", "new-s3cret-pass")

        assert (await service.authenticate(email, "new-s3cret-pass")).id == account_id
        with pytest.raises(InvalidCredentials):
            await service.authenticate(email, "correct-horse-42")

    @pytest.mark.asyncio
    async def test_change_password_rejections(self, session, make_account):
        """Wrong current password or weak new password change nothing."""
        account = await make_account()
        account_id, email = account.id, account.email
        service = AccountService(session)

        with pytest.raises(InvalidCredentials):
            await service.change_password(account_id, "wrong-pass", "new-s3cret-pass")
        with pytest.raises(WeakPassword):
            await service.change_password(account_id, "correct-horse-42", "short")

        assert (await service.authenticate(email, "correct-horse-42")).id == account_id

    @pytest.mark.asyncio
    async def test_reset_flow(self, session, make_account):
        """Reset token sets a new password once."""
        account = await make_account()
        account_id, email = account.id, account.email
        service = AccountService(session)

        issued = await service.request_password_reset(email.upper())
        assert issued.account_id == account_id
        assert issued.token.startswith(f"{account_id}.")
        assert issued.notify

        await service.reset_password(issued.token, "reset-s3cret-pass")

        assert (await service.authenticate(email, "reset-s3cret-pass")).id == account_id
        with pytest.raises(InvalidVerificationCode):
            await service.reset_password(issued.token, "another-s3cret")

    @pytest.mark.asyncio
    async def test_reset_unknown_email(self, session):
        """Unknown e-mails get no token."""
        assert await AccountService(session).request_password_reset("ghost@example.com") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["", "garbage", "abc.def", "999.secret", "1." + "x" * 100])
    async def test_reset_bad_token(self, session, make_account, token):
        """Malformed, foreign or oversized tokens are refused."""
        account = await make_account()
        await AccountService(session).request_password_reset(account.email)
        with pytest.raises(InvalidVerificationCode):
            await AccountService(session).reset_password(token, "reset-s3cret-pass")

    @pytest.mark.asyncio
    async def test_reset_expired(self, session, make_account):
        """Reset tokens expire."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_password_reset(account.email)

        stored = await service.get_account(account_id)
        stored.password_reset_expires_at = issued.expires_at - timedelta(hours=2)
        await session.commit()

        with pytest.raises(InvalidVerificationCode):
            await service.reset_password(issued.token, "reset-s3cret-pass")

    @pytest.mark.asyncio
    async def test_change_cancels_reset(self, session, make_account):
        """Changing the password invalidates an outstanding reset token."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_password_reset(account.email)

        await service.change_password(account_id, "correct-horse-42", "new-s3cret-pass")

        with pytest.raises(InvalidVerificationCode):
            await service.reset_password(issued.token, "reset-s3cret-pass")


class TestEmailVerification:
    """Tests for e-mail verification."""

    @pytest.mark.asyncio
    async def test_verify(self, session, make_account):
        """Code from the e-mail marks the address verified."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)

        issued = await service.request_email_verification(account_id)
        assert len(issued.code) == 6 and issued.code.isdigit()
        assert issued.email == account.email

        await service.verify_email(account_id, issued.code)

        stored = await service.get_account(account_id)
        await session.refresh(stored)
        assert stored.email_verified
        assert stored.email_code_hash is None
        with pytest.raises(EmailAlreadyVerified):
            await service.request_email_verification(account_id)

    @pytest.mark.asyncio
    async def test_wrong_code(self, session, make_account):
        """Wrong or oversized codes are refused."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_email_verification(account_id)
        wrong = "000000" if issued.code != "000000" else "111111"

        for code in (wrong, "9" * 100, ""):
            with pytest.raises(InvalidVerificationCode):
                await service.verify_email(account_id, code)

        stored = await service.get_account(account_id)
        await session.refresh(stored)
        assert not stored.email_verified

    @pytest.mark.asyncio
    async def test_expired_code(self, session, make_account):
        """Verification codes expire."""
        account = await make_account()
        account_id = account.id
        service = AccountService(session)
        issued = await service.request_email_verification(account_id)

        stored = await service.get_account(account_id)
        stored.email_code_expires_at = issued.expires_at - timedelta(days=2)
        await session.commit()

        with pytest.raises(InvalidVerificationCode):
            await service.verify_email(account_id, issued.code)
