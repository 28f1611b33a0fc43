"""
Withdrawal method checks module.

Contains destination and KYC checks:
- Destination resolution per method
- Fiat methods require verified KYC
- Crypto withdrawals capped for unverified accounts
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from loguru import logger

from optivus.config.settings import settings
from optivus.models.account import Account
from optivus.models.enums import KycStatus, WithdrawalMethod
from optivus.utils.exceptions import (
    CryptoLimitExceeded,
    FiatRequiresKyc,
    MissingDestination,
    OptivusError,
    PayoutMethodRequired,
)
from optivus.utils.money import format_money
from optivus.utils.validation import validate_crypto_destination

if TYPE_CHECKING:
    from optivus.services.withdrawal.withdrawal_validator_core import (
        WithdrawalDraft,
    )

STRIPE_DESTINATION = "Stripe Connect Account"


class MethodChecksMixin:
    """Mixin providing destination and KYC checks."""

    def resolve_destination(
        self, account: Account, draft: "WithdrawalDraft"
    ) -> tuple[tuple[str | None, str] | None, OptivusError | None]:
        """
        Resolve where the funds go.

        Crypto uses the supplied network and address, falling back to the
        bound wallet. Fiat methods use the bound payout account.

        Returns:
            Tuple of ((network, destination), error)
        """
        method = WithdrawalMethod(draft.method)

        if method is WithdrawalMethod.CRYPTO:
            network = draft.network or account.wallet_network
            address = draft.address or account.wallet_address
            is_valid, parsed, error_msg = validate_crypto_destination(network, address)
            if not is_valid:
                return None, MissingDestination(error_msg)
            return parsed, None

        if method is WithdrawalMethod.STRIPE:
            if not account.payout_connected:
                return None, PayoutMethodRequired(
                    "Connect a Stripe payout account first", method=method.value
                )
            return (None, STRIPE_DESTINATION), None

        if not account.paypal_email:
            return None, PayoutMethodRequired(
                "Add a PayPal e-mail first", method=method.value
            )
        return (None, account.paypal_email), None

    def check_kyc_limits(
        self, account: Account, method: WithdrawalMethod, amount: Decimal
    ) -> tuple[bool, OptivusError | None]:
        """
        Apply KYC-dependent rules.

        Returns:
            Tuple of (is_valid, error)
        """
        method = WithdrawalMethod(method)
        if account.kyc_status == KycStatus.VERIFIED.value:
            return True, None

        if method.is_fiat:
            return False, FiatRequiresKyc(
                method=method.value, kyc_status=account.kyc_status
            )

        cap = settings.unverified_crypto_withdrawal_cap
        if amount > cap:
            logger.warning(
                f"Crypto withdrawal of {amount} above unverified cap "
                f"for account {account.id}"
            )
            return False, CryptoLimitExceeded(
                "Unverified accounts can withdraw up to "
                f"{format_money(cap, settings.currency_symbol)} in crypto. "
                "Complete KYC to remove the limit.",
                cap=str(cap),
                amount=str(amount),
            )
        return True, None
