"""
Money Utilities
Fixed-point decimal helpers for every monetary computation
Source: https://docs.python.org/3/library/decimal.html#decimal.Decimal.quantize
Verified: 2026-10-18

All amounts are ``Decimal`` values quantized to the currency minor unit
(0.01) with ROUND_HALF_UP. Floats are converted through ``str`` so binary
representation error never enters a balance.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from careledger.utils.errors import InvalidAmount

AmountLike = Union[Decimal, int, float, str]

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_amount(value: AmountLike | None) -> Decimal:
    """
    Convert a value to a quantized Decimal amount.

    ``None`` is treated as zero. NaN, infinities and unparseable strings
    raise InvalidAmount.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(value)
        except (InvalidOperation, ValueError, TypeError) as err:
            raise InvalidAmount(f"Not a valid amount: {value!r}") from err

    if not amount.is_finite():
        raise InvalidAmount(f"Not a valid amount: {value!r}")
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def add(*amounts: AmountLike | None) -> Decimal:
    """Sum amounts exactly."""
    total = ZERO
    for amount in amounts:
        total += to_amount(amount)
    return total.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def subtract(minuend: AmountLike | None, subtrahend: AmountLike | None) -> Decimal:
    """Return ``minuend - subtrahend``; may be negative."""
    return (to_amount(minuend) - to_amount(subtrahend)).quantize(
        MINOR_UNIT, rounding=ROUND_HALF_UP
    )


def percentage_of(amount: AmountLike | None, percentage: AmountLike | None) -> Decimal:
    """
    Return ``percentage`` percent of ``amount`` rounded half-up to the minor unit.

    Example:
        >>> percentage_of(Decimal("1000"), 80)
        Decimal('800.00')
    """
    base = to_amount(amount)
    if percentage is None:
        return ZERO
    rate = percentage if isinstance(percentage, Decimal) else Decimal(str(percentage))
    if not rate.is_finite():
        raise InvalidAmount(f"Not a valid percentage: {percentage!r}")
    return (base * rate / HUNDRED).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def clamp_non_negative(amount: AmountLike | None) -> Decimal:
    """Return the amount, or zero if it is negative."""
    value = to_amount(amount)
    return value if value > ZERO else ZERO


def prorate(amount: AmountLike | None, numerator: int, denominator: int) -> Decimal:
    """
    Return ``amount * numerator / denominator`` rounded half-up.

    A zero or negative denominator yields zero.
    """
    if denominator <= 0:
        return ZERO
    value = to_amount(amount) * Decimal(numerator) / Decimal(denominator)
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def minimum(*amounts: AmountLike | None) -> Decimal:
    """Return the smallest amount."""
    return min(to_amount(amount) for amount in amounts)


def is_positive(amount: AmountLike | None) -> bool:
    return to_amount(amount) > ZERO
