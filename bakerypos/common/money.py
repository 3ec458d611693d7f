"""
Decimal helpers for currency and percentages.

Money never goes through binary floats: every amount is a ``Decimal``
quantized to the smallest currency unit with half-up rounding.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, str, None]


def to_money(value: Number) -> Decimal:
    """Coerce a value to a two-decimal ``Decimal``; ``None`` becomes 0.00."""
    if value is None:
        return ZERO.quantize(CENT)
    if isinstance(value, float):
        # floats only arrive from drivers that ignore Numeric; go through str
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Invalid money amount: {value!r}")


def to_whole_units(value: Number) -> int:
    """Round an amount to whole currency units (payment gateways reject fractions)."""
    return int(to_money(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_whole_units(value: Number) -> bool:
    """True when an amount has no fractional currency part."""
    amount = to_money(value)
    return amount == amount.to_integral_value()


def percent(part: Number, whole: Number) -> Optional[Decimal]:
    """``part / whole * 100`` to one decimal, or ``None`` when ``whole`` is not positive."""
    whole = to_money(whole)
    if whole <= ZERO:
        return None
    return (to_money(part) / whole * HUNDRED).quantize(TENTH, rounding=ROUND_HALF_UP)


def percent_change(current: Number, previous: Number) -> Optional[Decimal]:
    """Period-over-period change in percent; ``None`` when there is nothing to compare to."""
    previous = to_money(previous)
    if previous <= ZERO:
        return None
    delta = to_money(current) - previous
    return (delta / previous * HUNDRED).quantize(TENTH, rounding=ROUND_HALF_UP)


def format_percent(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.quantize(TENTH, rounding=ROUND_HALF_UP)}"


def format_signed_percent(value: Optional[Decimal]) -> str:
    """Render a change like ``+12.5%`` / ``-3.0%``; a missing value reads ``0%``."""
    if value is None:
        return "0%"
    value = value.quantize(TENTH, rounding=ROUND_HALF_UP)
    sign = "+" if value >= ZERO else ""
    return f"{sign}{value}%"
