"""Decimal conversion utilities for safe float-to-Decimal conversions.

This module provides utilities for converting numeric values to Decimal objects
safely by using string representation to avoid floating-point precision errors.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from services.core.constants import TRADE_DECIMAL_PLACES

__all__ = ["quantize_trade_value", "to_decimal"]

_TRADE_QUANTUM = Decimal(1).scaleb(-TRADE_DECIMAL_PLACES)


def to_decimal(value: object | None) -> Decimal | None:
    """
    Safely convert a numeric value to Decimal via string representation.

    Args:
        value: Numeric value (float, int, str, Decimal) or None

    Returns:
        Decimal representation of the value, or None if input is None

    Examples:
        >>> to_decimal(1.23)
        Decimal('1.23')
        >>> to_decimal("45.67")
        Decimal('45.67')
    """
    if value is None:
        return None
    return Decimal(str(value))


def quantize_trade_value(value: Decimal) -> Decimal:
    """Round to the 8 decimal places stored for prices, quantities and PnL (half-up)."""
    return value.quantize(_TRADE_QUANTUM, rounding=ROUND_HALF_UP)
