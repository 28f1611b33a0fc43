"""
Referral tier schedule.

Tier i (1 = direct sponsor) earns ``entry_fee * tier1_rate * decay^(i-1)``.
"""

from dataclasses import dataclass
from decimal import Decimal

from optivus.config.settings import Settings, settings
from optivus.utils.money import floor_money

# Hard bound for graph walks that must reach the root (cycle checks)
MAX_GRAPH_DEPTH = 10_000


@dataclass(frozen=True)
class TierSchedule:
    """Geometric commission schedule."""

    tier1_rate: Decimal
    decay: Decimal
    depth: int

    def __post_init__(self) -> None:
        if self.depth < 1:
            raise ValueError("Tier schedule needs at least one tier")
        if not (0 < self.tier1_rate <= 1):
            raise ValueError("Tier 1 rate must be in (0, 1]")
        if not (0 < self.decay < 1):
            raise ValueError("Decay must be in (0, 1)")
        if self.total_rate > 1:
            raise ValueError(
                f"Tier schedule pays {self.total_rate:.4f} of the fee; "
                "it must not exceed 1"
            )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "TierSchedule":
        """Build schedule from application settings."""
        config = config or settings
        return cls(
            tier1_rate=config.referral_tier1_rate,
            decay=config.referral_decay,
            depth=config.referral_max_depth,
        )

    @property
    def rates(self) -> list[Decimal]:
        """Rate per tier, tier 1 first; strictly decreasing."""
        return [self.tier1_rate * self.decay ** i for i in range(self.depth)]

    @property
    def total_rate(self) -> Decimal:
        return sum(self.rates, Decimal("0"))

    def rate_for_level(self, level: int) -> Decimal:
        """
        Rate for a tier level.

        Args:
            level: Tier level (1-indexed)

        Returns:
            Rate, or zero outside the schedule
        """
        if level < 1 or level > self.depth:
            return Decimal("0")
        return self.tier1_rate * self.decay ** (level - 1)

    def amount_for_level(self, fee: Decimal, level: int) -> Decimal:
        """Commission for a tier, rounded down to the penny."""
        return floor_money(fee * self.rate_for_level(level))
