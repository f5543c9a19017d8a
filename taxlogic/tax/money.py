"""Minor-unit money arithmetic.

Calculations run on integer cents so that repeated recalculation never
accumulates floating point or Decimal context drift. Values cross into
and out of cents only at the edges via ``to_cents`` / ``from_cents``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_cents(amount: Decimal | int | str) -> int:
    """Convert a currency amount to integer cents, rounding half up.

    Example:
        >>> to_cents(Decimal("12.345"))
        1235
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a display amount with two decimals.

    Example:
        >>> from_cents(1235)
        Decimal('12.35')
    """
    return (Decimal(cents) / 100).quantize(CENT)


def apply_rate(cents: int, rate: Decimal) -> int:
    """Multiply a cent amount by a rate and round half up to whole cents."""
    return int((Decimal(cents) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
