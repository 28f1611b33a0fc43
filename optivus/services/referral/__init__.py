"""
Referral services.

Referral graph traversal, tier schedule and commission distribution.
"""

from optivus.services.referral.commission_engine import (
    CommissionCredit,
    CommissionEngine,
    DistributionResult,
)
from optivus.services.referral.config import TierSchedule
from optivus.services.referral.graph import ReferralGraph, TeamNode

__all__ = [
    "CommissionCredit",
    "CommissionEngine",
    "DistributionResult",
    "ReferralGraph",
    "TeamNode",
    "TierSchedule",
]
