"""
Tax Service - subtotal, discount and GST (CGST/SGST or IGST) for a sale

Pure functions only: no database, no settings lookup. Callers pass the rate.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Union

from gemtrade.utils.gst import gst_rate_to_fraction, round_money, to_decimal

DEFAULT_GST_RATE = Decimal("3")  # percent


class TaxableLine(Protocol):
    quantity: int
    carat: Union[Decimal, float]
    price_per_carat: Union[Decimal, float]


@dataclass(frozen=True)
class TaxBreakdown:
    """
    gross: sum of line totals before discount
    taxable_amount: gross - discount, floored at 0 (stored as Sale.total_amount)
    """
    gross: Decimal
    discount: Decimal
    taxable_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_with_tax: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst


def line_total(quantity, carat, price_per_carat) -> Decimal:
    """quantity x carat x price_per_carat, rounded to paise."""
    return round_money(to_decimal(quantity) * to_decimal(carat) * to_decimal(price_per_carat))


def compute_tax(
    items: Iterable[TaxableLine],
    discount=0,
    is_out_of_state: bool = False,
    gst_rate=DEFAULT_GST_RATE,
) -> TaxBreakdown:
    """
    Compute totals for a set of lines.

    In-state: CGST and SGST each get half the rate. Out-of-state: IGST gets the full rate.
    Each component is rounded to 2 decimals before the grand total is summed.
    """
    gross = sum(
        (line_total(it.quantity, it.carat, it.price_per_carat) for it in items),
        Decimal("0"),
    )
    discount_value = round_money(discount)
    if discount_value < 0:
        raise ValueError("discount cannot be negative")
    taxable = max(Decimal("0"), gross - discount_value)
    taxable = round_money(taxable)

    rate = gst_rate_to_fraction(gst_rate)
    if is_out_of_state:
        igst = round_money(taxable * rate)
        cgst = sgst = Decimal("0.00")
    else:
        half = rate / Decimal("2")
        cgst = round_money(taxable * half)
        sgst = round_money(taxable * half)
        igst = Decimal("0.00")

    return TaxBreakdown(
        gross=round_money(gross),
        discount=discount_value,
        taxable_amount=taxable,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        total_with_tax=round_money(taxable + cgst + sgst + igst),
    )


def compute_profit(items: Iterable, taxable_amount) -> Optional[Decimal]:
    """
    taxable_amount - cost of goods sold (quantity x carat x cost_per_carat per line).

    None when any line has no cost basis: a partial cost would overstate profit.
    """
    cost = Decimal("0")
    for it in items:
        cost_per_carat = getattr(it, "cost_per_carat", None)
        if cost_per_carat is None:
            return None
        cost += line_total(it.quantity, it.carat, cost_per_carat)
    return round_money(to_decimal(taxable_amount) - cost)
