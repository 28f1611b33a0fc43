"""
Unit tests for the referral tier schedule and commission planning.

Tests cover:
- Geometric rates and their ordering
- Per-level amounts rounded down to the penny
- Schedule validation
- Plans for chains shorter than, equal to and longer than the schedule
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from optivus.services.referral.commission_engine import CommissionEngine
from optivus.services.referral.config import TierSchedule

FEE = Decimal("50.00")


def _chain(length):
    return [SimpleNamespace(id=100 + i) for i in range(length)]


class TestTierRates:
    """Test tier rate computation."""

    def test_rates_strictly_decrease(self, schedule):
        """Each tier pays less than the one above it."""
        rates = schedule.rates
        assert len(rates) == 6
        assert all(a > b for a, b in zip(rates, rates[1:]))

    def test_rate_follows_geometric_progression(self, schedule):
        """Tier i rate equals tier1 * decay^(i-1)."""
        assert schedule.rate_for_level(1) == Decimal("0.20")
        assert schedule.rate_for_level(2) == Decimal("0.20") * Decimal("0.85")
        assert schedule.rate_for_level(3) == Decimal("0.20") * Decimal("0.85") ** 2

    def test_rate_outside_schedule_is_zero(self, schedule):
        """Levels beyond the schedule earn nothing."""
        assert schedule.rate_for_level(0) == 0
        assert schedule.rate_for_level(7) == 0

    def test_total_rate_below_one(self, schedule):
        """Default schedule pays out about 83% of the fee."""
        assert Decimal("0.83") < schedule.total_rate < Decimal("0.84")


class TestTierAmounts:
    """Test per-level commission amounts."""

    @pytest.mark.parametrize(
        "level,expected",
        [
            (1, Decimal("10.00")),
            (2, Decimal("8.50")),
            (3, Decimal("7.22")),
            (4, Decimal("6.14")),
            (5, Decimal("5.22")),
            (6, Decimal("4.43")),
        ],
    )
    def test_amounts_for_default_fee(self, schedule, level, expected):
        """Amounts are floored to the penny."""
        assert schedule.amount_for_level(FEE, level) == expected


class TestScheduleValidation:
    """Test schedule validation."""

    def test_schedule_above_fee_rejected(self):
        """A schedule paying more than the fee is rejected."""
        with pytest.raises(ValueError):
            TierSchedule(tier1_rate=Decimal("0.5"), decay=Decimal("0.9"), depth=6)

    def test_zero_depth_rejected(self):
        """At least one tier is required."""
        with pytest.raises(ValueError):
            TierSchedule(tier1_rate=Decimal("0.2"), decay=Decimal("0.85"), depth=0)

    def test_decay_of_one_rejected(self):
        """Rates must strictly decrease."""
        with pytest.raises(ValueError):
            TierSchedule(tier1_rate=Decimal("0.1"), decay=Decimal("1"), depth=3)

    def test_from_settings(self):
        """Schedule builds from application settings."""
        schedule = TierSchedule.from_settings()
        assert schedule.depth >= 1
        assert schedule.total_rate <= 1


class TestCommissionPlan:
    """Test commission split planning (no database)."""

    @pytest.fixture
    def engine(self, mock_session, schedule):
        return CommissionEngine(mock_session, schedule)

    @pytest.mark.parametrize("length", [0, 1, 5, 6, 9])
    def test_split_sums_to_fee(self, engine, length):
        """Credits plus treasury remainder always equal the fee."""
        credits, remainder = engine.plan(FEE, _chain(length))
        assert sum(c.amount for c in credits) + remainder == FEE
        assert remainder >= 0

    def test_empty_chain_sends_everything_to_treasury(self, engine):
        """Root account activation pays the whole fee to the treasury."""
        credits, remainder = engine.plan(FEE, [])
        assert credits == []
        assert remainder == FEE

    def test_only_schedule_depth_is_paid(self, engine):
        """Ancestors beyond the last tier receive nothing."""
        credits, remainder = engine.plan(FEE, _chain(9))
        assert [c.level for c in credits] == [1, 2, 3, 4, 5, 6]
        assert [c.account_id for c in credits] == [100, 101, 102, 103, 104, 105]
        assert remainder == Decimal("8.49")

    def test_rounding_residue_goes_to_treasury(self, mock_session):
        """Fractions of a penny lost to flooring are swept."""
        schedule = TierSchedule(
            tier1_rate=Decimal("0.333"), decay=Decimal("0.5"), depth=2
        )
        engine = CommissionEngine(mock_session, schedule)
        credits, remainder = engine.plan(Decimal("0.10"), _chain(2))
        assert [c.amount for c in credits] == [Decimal("0.03"), Decimal("0.01")]
        assert remainder == Decimal("0.06")
