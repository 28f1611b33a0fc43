"""
Security helpers.

bcrypt hashing for passwords, PINs and one-time codes, and masking of
sensitive data in logs.
"""

import secrets

import bcrypt

from optivus.config.constants import MAX_PASSWORD_BYTES


def hash_secret(secret: str) -> str:
    """
    Hash a secret with bcrypt.

    Args:
        secret: Plain secret (at most 72 bytes once encoded)

    Returns:
        bcrypt hash as text
    """
    return bcrypt.hashpw(secret.encode(), bcrypt.gensalt()).decode()


def verify_secret(secret: str | None, hashed: str | None) -> bool:
    """
    Check a secret against a bcrypt hash.

    Secrets longer than bcrypt accepts never match.

    Args:
        secret: Plain secret as submitted
        hashed: Stored bcrypt hash

    Returns:
        True if the secret matches
    """
    if not secret or not hashed:
        return False
    encoded = secret.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode())


def generate_numeric_code(length: int) -> str:
    """One-time numeric code, e.g. for e-mail delivery."""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging.

    Args:
        address: Wallet address

    Returns:
        Masked address (e.g. "0x1234...abcd")
    """
    if not address:
        return "N/A"
    if len(address) <= 12:
        return address[:3] + "..."
    return f"{address[:6]}...{address[-4:]}"


def mask_email(email: str | None) -> str:
    """
    Mask e-mail for logging.

    Args:
        email: E-mail address

    Returns:
        Masked e-mail (e.g. "al***@example.com")
    """
    if not email or "@" not in email:
        return "N/A"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"
