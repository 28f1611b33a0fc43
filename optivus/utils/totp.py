"""
TOTP helpers for two-factor authentication.
"""

import pyotp

from optivus.config.settings import settings


def generate_secret() -> str:
    """New base32 TOTP secret."""
    return pyotp.random_base32()


def provisioning_uri(secret: str, account_name: str) -> str:
    """
    otpauth:// URI for authenticator apps (rendered as a QR code by the UI).

    Args:
        secret: Base32 secret
        account_name: Label shown in the authenticator (usually the e-mail)

    Returns:
        Provisioning URI
    """
    return pyotp.TOTP(secret).provisioning_uri(
        name=account_name, issuer_name=settings.two_factor_issuer
    )


def verify_token(secret: str | None, token: str | None) -> bool:
    """
    Verify a 6-digit token, tolerating one step of clock drift.

    Args:
        secret: Base32 secret
        token: Token entered by the user

    Returns:
        True if the token is valid now
    """
    if not secret or not token:
        return False
    token = token.strip().replace(" ", "")
    if not token.isdigit():
        return False
    return pyotp.TOTP(secret).verify(token, valid_window=1)
