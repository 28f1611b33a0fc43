"""Optivus Protocol ledger and referral engine."""

__version__ = "0.1.0"
