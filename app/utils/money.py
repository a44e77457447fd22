"""Decimal helpers for amounts stored in MongoDB.

Amounts are kept as ``Decimal`` in memory and as BSON ``Decimal128`` on disk.
Rounding happens only at display time.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, DecimalException, ROUND_HALF_UP
from typing import Optional, Union

from bson import Decimal128

QUANTIZE_PATTERN = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Union[Decimal, Decimal128, int, float, str, None]) -> Decimal:
    """Convert any stored or incoming numeric value to Decimal, without rounding."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, (int, float)):
        # via str to avoid binary float artefacts
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def is_storable(value: Decimal) -> bool:
    """True when ``value`` is finite and fits Decimal128 exactly (34 digits, bounded exponent)."""
    value = to_decimal(value)
    if not value.is_finite():
        return False
    try:
        Decimal128(value)
    except DecimalException:
        return False
    return True


def to_decimal128(value: Optional[Decimal]) -> Optional[Decimal128]:
    if value is None:
        return None
    return Decimal128(to_decimal(value))


def format_amount(value: Decimal) -> str:
    """Render an amount for audit text, e.g. ``Decimal("80")`` -> ``"80.00"``."""
    return str(to_decimal(value).quantize(QUANTIZE_PATTERN, rounding=ROUND_HALF_UP))


def date_to_datetime(value: Optional[date]) -> Optional[datetime]:
    """BSON has no date type; calendar dates are stored as midnight UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def datetime_to_date(value: Union[date, datetime, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value
