"""Exact ratio helpers.

All slippage math runs on ``Fraction`` so that a probe sitting exactly on the
0.99 threshold (or exactly one tolerance away from it) is never misclassified.
Ether/wei conversion goes through ``Decimal`` for the same reason.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from fractions import Fraction

WEI_PER_ETHER = 10**18

TARGET_RATIO = Fraction(99, 100)


def exact_ratio(numerator: int, denominator: int) -> Fraction:
    if denominator == 0:
        raise ZeroDivisionError("ratio denominator must be non-zero")
    return Fraction(int(numerator), int(denominator))


def tolerance_from_digits(digits: int) -> Fraction:
    """Tolerance ``0.00<digits zeros>1``, e.g. 2 digits -> 0.00001."""
    if digits < 0:
        raise ValueError(f"tolerance digits must be >= 0, got {digits}")
    return Fraction(1, 10 ** (digits + 3))


def distance(value: Fraction, target: Fraction = TARGET_RATIO) -> Fraction:
    return abs(value - target)


def within_tolerance(
    value: Fraction,
    tolerance: Fraction,
    target: Fraction = TARGET_RATIO,
) -> bool:
    return distance(value, target) <= tolerance


def parse_ether(value: str | int | Decimal) -> int:
    """Convert an ether amount to wei; fractional wei is rejected."""
    try:
        ether = Decimal(str(value).strip())
    except InvalidOperation as error:
        raise ValueError(f"invalid ether amount: {value!r}") from error
    if not ether.is_finite() or ether <= 0:
        raise ValueError(f"ether amount must be positive: {value!r}")
    wei = ether * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"ether amount has more than 18 decimals: {value!r}")
    return int(wei)


def format_ether(amount: int) -> str:
    ether = Decimal(int(amount)) / Decimal(WEI_PER_ETHER)
    text = format(ether.normalize(), "f")
    return text if "." in text else f"{text}.0"


def format_ratio(value: Fraction, places: int = 8) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str((Decimal(value.numerator) / Decimal(value.denominator)).quantize(quantum))
