"""
Numeric helpers for turning loosely-typed API values into Decimals.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Optional


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert an API value (str, int, float, Decimal) to a finite Decimal.

    Returns None for None, empty strings, booleans, unparseable text, NaN and
    infinities. Floats go through str() so 0.1 stays 0.1.

    Examples:
        >>> to_decimal("50123.45")
        Decimal('50123.45')
        >>> to_decimal("") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def scale_down(amount: Any, decimals: int) -> Optional[Decimal]:
    """
    Convert a raw integer token amount to whole-token units.

    Example:
        >>> scale_down("1500000", 6)
        Decimal('1.5')
    """
    raw = to_decimal(amount)
    if raw is None:
        return None
    with localcontext() as ctx:
        ctx.prec = 60
        return raw / (Decimal(10) ** decimals)


def percent_change(last: Optional[Decimal], opening: Optional[Decimal]) -> Optional[Decimal]:
    """
    Percentage change from opening to last, or None if it cannot be computed.

    Example:
        >>> percent_change(Decimal("110"), Decimal("100"))
        Decimal('10.0')
    """
    if last is None or opening is None or opening == 0:
        return None
    return (last - opening) / opening * 100
