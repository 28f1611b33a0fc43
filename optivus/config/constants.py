"""
Static constants.

Values here are product rules that are not meant to be tuned per deployment.
"""

from decimal import Decimal

# Money
CENT = Decimal("0.01")
ZERO = Decimal("0")

# Registration rules
USERNAME_PATTERN = r"^[a-zA-Z0-9_]{3,20}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72

# Withdrawal PIN
PIN_PATTERN = r"^\d{4,6}$"
PIN_CODE_LENGTH = 6

# Password reset and e-mail verification
RESET_TOKEN_BYTES = 32
EMAIL_CODE_LENGTH = 6

# Referral codes
REFERRAL_CODE_SUFFIX_LENGTH = 4
REFERRAL_CODE_MAX_ATTEMPTS = 10

# KYC
DEFAULT_KYC_REJECTION_REASON = (
    "Your submission was rejected. Please review your documents and try again."
)

# Treasury account identity
TREASURY_USERNAME = "treasury"
TREASURY_EMAIL = "treasury@optivus.internal"

# Crypto networks accepted for withdrawals
SUPPORTED_CRYPTO_NETWORKS = ("ERC20", "TRC20", "BEP20", "POLYGON")

# Platform setting keys
PLATFORM_WITHDRAWALS_PAUSED = "withdrawals_paused"
