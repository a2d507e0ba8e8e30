"""
Money conversions between external decimal amounts and integer minor units.

Amounts stay ``Decimal`` everywhere outside the allocator; conversion happens
only at that boundary.  No floats.
"""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT_PLACES = 2
_QUANTUM = Decimal(1).scaleb(-MINOR_UNIT_PLACES)
_SCALE = 10**MINOR_UNIT_PLACES


def round_money(amount: Decimal) -> Decimal:
    """Round to whole minor units (ROUND_HALF_UP)."""
    return Decimal(amount).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to integer minor units, e.g. ``Decimal("-120.00")`` -> ``-12000``."""
    return int(round_money(amount) * _SCALE)


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    return (Decimal(minor) / _SCALE).quantize(_QUANTUM)
