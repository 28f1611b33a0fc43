"""
Standard type definitions for database models.

Provides consistent types for monetary fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for balances, fees, commissions and withdrawals
# Precision: 18 digits total, 2 after decimal point (pennies)
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(18, 2)
