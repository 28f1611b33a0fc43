"""
Input validation utilities.

Validators return ``(is_valid, normalized_value, error_message)`` tuples so
callers decide which named error to raise.
"""

import re
from enum import StrEnum
from typing import TypeVar

from optivus.config.constants import (
    EMAIL_PATTERN,
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    PIN_PATTERN,
    SUPPORTED_CRYPTO_NETWORKS,
    USERNAME_PATTERN,
)

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_USERNAME_RE = re.compile(USERNAME_PATTERN)
_PIN_RE = re.compile(PIN_PATTERN)

E = TypeVar("E", bound=StrEnum)


def validate_email(value: str | None) -> tuple[bool, str | None, str | None]:
    """
    Validate e-mail address.

    Args:
        value: String to validate as e-mail

    Returns:
        Tuple of (is_valid, normalized_email, error_message)

    Examples:
        >>> validate_email(" Alex@Example.com ")
        (True, 'alex@example.com', None)
        >>> validate_email("invalid")
        (False, None, 'Please enter a valid e-mail address')
    """
    if not value:
        return False, None, "E-mail is required"
    cleaned = value.strip().lower()
    if not _EMAIL_RE.match(cleaned):
        return False, None, "Please enter a valid e-mail address"
    return True, cleaned, None


def validate_username(value: str | None) -> tuple[bool, str | None, str | None]:
    """
    Validate username.

    Args:
        value: Username

    Returns:
        Tuple of (is_valid, username, error_message)
    """
    if not value:
        return False, None, "Username is required"
    cleaned = value.strip()
    if not _USERNAME_RE.match(cleaned):
        return False, None, (
            "Username must be 3-20 characters: letters, numbers and underscores"
        )
    return True, cleaned, None


def validate_password(value: str | None) -> tuple[bool, str | None, str | None]:
    """Validate login password length."""
    if not value or len(value) < MIN_PASSWORD_LENGTH:
        return False, None, (
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    # bcrypt only hashes the first 72 bytes
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        return False, None, "Password is too long"
    return True, value, None


def validate_pin(value: str | None) -> tuple[bool, str | None, str | None]:
    """Validate withdrawal PIN format (4-6 digits)."""
    if not value or not _PIN_RE.match(value):
        return False, None, "PIN must be 4 to 6 digits"
    return True, value, None


def validate_choice(
    value: str | None, choices: type[E], allowed: tuple[E, ...] | None = None
) -> tuple[bool, E | None, str | None]:
    """
    Validate a value against a string enum.

    Args:
        value: Submitted value (case-insensitive)
        choices: Enum class
        allowed: Subset of members accepted here (default: all)

    Returns:
        Tuple of (is_valid, member, error_message)

    Examples:
        >>> validate_choice("Frozen", AccountStatus)
        (True, <AccountStatus.FROZEN: 'frozen'>, None)
    """
    accepted = allowed or tuple(choices)
    if isinstance(value, str):
        cleaned = value.strip().lower()
        for member in accepted:
            if member.value.lower() == cleaned:
                return True, member, None
    options = ", ".join(m.value for m in accepted)
    return False, None, f"Expected one of: {options}"


def validate_crypto_destination(
    network: str | None, address: str | None
) -> tuple[bool, tuple[str, str] | None, str | None]:
    """
    Validate crypto withdrawal destination.

    Args:
        network: Network name, e.g. "TRC20"
        address: Wallet address on that network

    Returns:
        Tuple of (is_valid, (network, address), error_message)
    """
    if not network or not address or not address.strip():
        return False, None, "Network and address are required for crypto withdrawals"
    normalized_network = network.strip().upper()
    if normalized_network not in SUPPORTED_CRYPTO_NETWORKS:
        return False, None, f"Unsupported network: {network}"
    return True, (normalized_network, address.strip()), None


def sanitize_input(text: str | None, max_length: int = 500) -> str:
    """
    Sanitize free-text input.

    Args:
        text: Input text
        max_length: Maximum length

    Returns:
        Stripped text without control characters, truncated
    """
    if not text:
        return ""
    cleaned = "".join(ch for ch in text if ch.isprintable())
    return cleaned.strip()[:max_length]
