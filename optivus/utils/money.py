"""
Fixed-point money helpers.

All amounts are Decimal quantized to pennies; floats never enter the ledger.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from optivus.config.constants import CENT, ZERO


def to_money(value: Decimal | int | str | float | None) -> Decimal:
    """
    Normalize a value to a two-decimal Decimal.

    Aggregates coming back from SQLite arrive as float; they are converted
    through ``str`` so no binary rounding noise survives.

    Args:
        value: Amount in any numeric form

    Returns:
        Decimal quantized to 0.01
    """
    if value is None:
        return ZERO.quantize(CENT)
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_money(value: Decimal) -> Decimal:
    """Round down to the penny (commission shares never round up)."""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def parse_amount(value: Decimal | int | str) -> Decimal | None:
    """
    Parse a strictly positive amount with at most two decimal places.

    Args:
        value: Raw amount

    Returns:
        Parsed Decimal or None if the value is not acceptable
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    if amount != amount.quantize(CENT):
        return None
    return amount.quantize(CENT)


def format_money(amount: Decimal, symbol: str = "£") -> str:
    """Format amount for descriptions, e.g. ``£1,234.50``."""
    return f"{symbol}{to_money(amount):,.2f}"
