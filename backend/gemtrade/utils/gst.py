"""
GST helpers for Indian gemstone sales.

Rates may arrive either as a percentage (3 meaning 3%) or as a fraction
(0.03 meaning 3%). All calculations use a Decimal fraction; this module
normalizes so 3 -> 0.03 and 0.03 -> 0.03.

Money is rounded half-up to the rupee's minor unit (paise, 2 decimals).
Carat weights are kept to 3 decimals, the scale of the carat columns.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONEY_QUANT = Decimal("0.01")
CARAT_QUANT = Decimal("0.001")

Number = Union[None, int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Decimal from int/float/str without binary float drift (floats go through str)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def round_carat(value: Number) -> Decimal:
    return to_decimal(value).quantize(CARAT_QUANT, rounding=ROUND_HALF_UP)


def gst_rate_to_fraction(value: Number) -> Decimal:
    """
    Normalize a GST rate to a fraction.

    - 0 or None -> 0
    - 0.03 (fraction) -> 0.03
    - 3 (percentage) -> 0.03
    - Values in (0, 1) are treated as fractions; 1 and above as percentages.
    """
    if value is None:
        return Decimal("0")
    v = to_decimal(value)
    if v == 0:
        return Decimal("0")
    if 0 < v < 1:
        return v
    return v / Decimal("100")
