"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./optivus.db"
    database_echo: bool = False

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str | None = "logs/optivus.log"

    # Entry fee and currency
    entry_fee: Decimal = Field(
        default=Decimal("50.00"),
        description="One-time activation fee distributed across the sponsor chain",
    )
    currency_symbol: str = "£"

    # Referral tier schedule: tier i pays entry_fee * tier1_rate * decay^(i-1)
    referral_tier1_rate: Decimal = Field(default=Decimal("0.20"), gt=0, le=1)
    referral_decay: Decimal = Field(default=Decimal("0.85"), gt=0, lt=1)
    referral_max_depth: int = Field(default=6, ge=1, le=20)
    root_referral_code: str = "OPTIVUS"

    # Withdrawals
    min_withdrawal_amount: Decimal = Decimal("10.00")
    unverified_crypto_withdrawal_cap: Decimal = Field(
        default=Decimal("200.00"),
        description="Largest crypto withdrawal allowed before KYC verification",
    )
    emergency_stop_withdrawals: bool = Field(
        default=False,
        description="Static kill switch for all withdrawals (platform gate)",
    )

    # Withdrawal PIN
    pin_max_attempts: int = 5
    pin_lockout_minutes: int = 15
    pin_code_ttl_minutes: int = 15

    # Password reset and e-mail verification
    password_reset_ttl_minutes: int = 60
    email_verification_ttl_minutes: int = 1440

    # Two-factor authentication
    two_factor_issuer: str = "Optivus Protocol"

    # History
    transactions_page_size: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_tier_schedule(self) -> 'Settings':
        """Reject tier schedules that would pay out more than the fee."""
        total = sum(
            self.referral_tier1_rate * self.referral_decay ** i
            for i in range(self.referral_max_depth)
        )
        if total > 1:
            raise ValueError(
                f"Referral tier schedule sums to {total:.4f} of the entry fee; "
                "it must not exceed 1"
            )
        return self

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Warn about development defaults used in production."""
        if self.environment == "production" and self.database_url.startswith("sqlite"):
            logger.warning(
                "SQLite database configured in production; "
                "per-account row locks are not enforced by SQLite"
            )
        return self

    @field_validator('entry_fee', 'min_withdrawal_amount', 'unverified_crypto_withdrawal_cap')
    @classmethod
    def validate_positive_amount(cls, v: Decimal) -> Decimal:
        """Amounts must be positive with at most two decimal places."""
        if v <= 0:
            raise ValueError("Amount must be positive")
        if v != v.quantize(Decimal("0.01")):
            raise ValueError("Amount must have at most two decimal places")
        return v

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are supported."""
        if not (v.startswith("postgresql+asyncpg://") or v.startswith("sqlite+aiosqlite://")):
            raise ValueError(
                "database_url must use postgresql+asyncpg:// or sqlite+aiosqlite://"
            )
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


settings = Settings()
