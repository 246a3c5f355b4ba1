"""
Numeric helpers shared by scoring and progress reporting
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def to_decimal(value) -> Decimal:
    """Parse a numeric input; raises ValueError for anything that is not a finite number"""
    if isinstance(value, bool):
        raise ValueError(f'Not a number: {value!r}')
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f'Not a number: {value!r}')
    if not result.is_finite():
        raise ValueError(f'Not a number: {value!r}')
    return result


def as_number(value: Decimal) -> Number:
    """Integral decimals become ints, the rest floats - JSON friendly"""
    value = Decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def percentage(part: Number, whole: Number) -> float:
    """part / whole * 100 to two places; 0 when whole is 0"""
    if not whole:
        return 0.0
    return float((Decimal(str(part)) * 100 / Decimal(str(whole))).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
