"""
Exchange Gateway - Decimal precision helpers.

Prices are rounded half-up to the market's price digits; amounts are
truncated so an order never exceeds what the caller asked for.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[int, float, str, Decimal]


def _quantize(value: Number, digits: Optional[int], rounding: str) -> Decimal:
    number = Decimal(str(value))
    if digits is None:
        return number
    exponent = Decimal(1).scaleb(-digits)
    return number.quantize(exponent, rounding=rounding)


def _to_string(number: Decimal) -> str:
    text = format(number, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def round_to_string(value: Number, digits: Optional[int]) -> str:
    return _to_string(_quantize(value, digits, ROUND_HALF_UP))


def truncate_to_string(value: Number, digits: Optional[int]) -> str:
    return _to_string(_quantize(value, digits, ROUND_DOWN))


def truncate(value: Number, digits: Optional[int]) -> float:
    return float(_quantize(value, digits, ROUND_DOWN))
