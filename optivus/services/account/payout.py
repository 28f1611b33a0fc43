"""
Payout bindings and profile updates.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from optivus.utils.exceptions import InvalidEmail, MissingDestination, ValidationError
from optivus.utils.security import mask_address
from optivus.utils.validation import (
    sanitize_input,
    validate_crypto_destination,
    validate_email,
)

if TYPE_CHECKING:
    from optivus.services.base_service import BaseService


@dataclass
class PayoutBindings:
    """Payout destinations bound to an account."""

    payout_connected: bool
    paypal_email: str | None
    wallet_network: str | None
    wallet_address: str | None


class AccountPayoutMixin:
    """Mixin for payout destinations and profile fields."""

    account_transaction: "BaseService.account_transaction"

    async def connect_payout_account(self, account_id: int) -> PayoutBindings:
        """
        Mark the external (Stripe Connect) payout account as connected.

        Onboarding happens with the payment provider; this records the
        outcome.
        """
        async with self.account_transaction(account_id) as account:
            account.payout_connected = True
            bindings = self._bindings(account)

        logger.info("Payout account connected", extra={"account_id": account_id})
        return bindings

    async def set_paypal_email(self, account_id: int, email: str) -> PayoutBindings:
        """
        Bind PayPal e-mail.

        Raises:
            InvalidEmail: Malformed e-mail
        """
        is_valid, email, error = validate_email(email)
        if not is_valid:
            raise InvalidEmail(error)

        async with self.account_transaction(account_id) as account:
            account.paypal_email = email
            bindings = self._bindings(account)

        logger.info("PayPal e-mail bound", extra={"account_id": account_id})
        return bindings

    async def set_crypto_wallet(
        self, account_id: int, network: str, address: str
    ) -> PayoutBindings:
        """
        Bind default crypto withdrawal wallet.

        Raises:
            MissingDestination: Network or address missing or unsupported
        """
        is_valid, parsed, error = validate_crypto_destination(network, address)
        if not is_valid:
            raise MissingDestination(error)

        async with self.account_transaction(account_id) as account:
            account.wallet_network, account.wallet_address = parsed
            bindings = self._bindings(account)

        logger.info(
            "Crypto wallet bound",
            extra={
                "account_id": account_id,
                "network": parsed[0],
                "address": mask_address(parsed[1]),
            },
        )
        return bindings

    async def update_profile(
        self, account_id: int, first_name: str, last_name: str
    ) -> None:
        """
        Update display name.

        Raises:
            ValidationError: Empty name
        """
        first_name = sanitize_input(first_name, 100)
        last_name = sanitize_input(last_name, 100)
        if not first_name or not last_name:
            raise ValidationError("First and last name are required")

        async with self.account_transaction(account_id) as account:
            account.first_name = first_name
            account.last_name = last_name

    @staticmethod
    def _bindings(account) -> PayoutBindings:
        return PayoutBindings(
            payout_connected=account.payout_connected,
            paypal_email=account.paypal_email,
            wallet_network=account.wallet_network,
            wallet_address=account.wallet_address,
        )
