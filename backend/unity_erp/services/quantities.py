"""
Quantity helpers shared by the requirement calculations.

All arithmetic runs on Decimal. Rounding for display happens only in
format_quantity, never before a calculation.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from unity_erp.core.settings import get_settings

ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a DB/JSON value to Decimal.

    Floats go through str() so 0.1 stays 0.1. None and unparseable values
    return the default.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def non_negative(value: Decimal) -> Decimal:
    """max(0, value)"""
    return value if value > ZERO else ZERO


def format_quantity(value: Any, tolerance: Optional[Decimal] = None) -> str:
    """
    Display form of a quantity.

    Within the tolerance (0.001 by default) of an integer the integer is shown,
    otherwise two decimal places.

        >>> format_quantity(Decimal("12.0004"))
        '12'
        >>> format_quantity(Decimal("2.5"))
        '2.50'
    """
    if tolerance is None:
        tolerance = get_settings().QUANTITY_DISPLAY_TOLERANCE
    quantity = to_decimal(value)
    nearest = quantity.to_integral_value()
    if abs(quantity - nearest) < tolerance:
        # "-0" reads oddly
        return str(int(nearest)) if nearest != 0 else "0"
    return f"{quantity:.2f}"
