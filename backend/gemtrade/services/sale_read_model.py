"""
Sale read model - denormalized sale for display

Pure: takes already-loaded records, returns a SaleView, never writes.
Totals are recomputed from the line items instead of trusting the stored
columns; a mismatch is flagged on the view and logged.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional
from uuid import UUID

from gemtrade.config import settings
from gemtrade.models import Client, InventoryItem, Sale, SaleLineItem
from gemtrade.schemas.sale import SaleView, SaleViewItem, TaxBreakdownView
from gemtrade.services.tax_service import compute_tax
from gemtrade.utils.gst import gst_rate_to_fraction, round_money

logger = logging.getLogger(__name__)

_SALE_FIELDS = (
    "id", "sale_code", "date", "client_id", "payment_status", "discount", "is_out_of_state",
    "total_amount", "cgst", "sgst", "igst", "total_with_tax", "profit", "notes",
    "buyers_order_number", "buyers_order_date", "dispatch_doc_no", "delivery_note_date",
    "dispatched_through", "destination", "terms_of_delivery", "waiting_period", "is_trustworthy",
    "created_at", "updated_at",
)


def _stone_display_name(line: SaleLineItem, stone: Optional[InventoryItem]) -> str:
    if stone is not None:
        return stone.display_name
    if line.gem_code:
        return f"{line.stone_type or 'Stone'} ({line.gem_code})"
    return "Unknown Stone"


class SaleReadModelBuilder:
    """Builds SaleView objects."""

    def __init__(self, gst_rate=None):
        self.gst_rate = settings.GST_RATE_PERCENT if gst_rate is None else gst_rate

    def build(
        self,
        sale: Sale,
        items: Iterable[SaleLineItem],
        client: Optional[Client] = None,
        stones: Optional[Dict[UUID, InventoryItem]] = None,
    ) -> SaleView:
        items = list(items)
        stones = stones or {}
        tax = compute_tax(items, sale.discount, bool(sale.is_out_of_state), self.gst_rate)

        stored = (
            round_money(sale.total_amount), round_money(sale.cgst), round_money(sale.sgst),
            round_money(sale.igst), round_money(sale.total_with_tax),
        )
        recomputed = (tax.taxable_amount, tax.cgst, tax.sgst, tax.igst, tax.total_with_tax)
        consistent = stored == recomputed
        if not consistent:
            logger.warning(
                "Sale %s stored totals %s differ from recomputed %s",
                sale.sale_code, stored, recomputed,
            )

        view_items = []
        for line in items:
            stone = stones.get(line.stone_id)
            view_items.append(SaleViewItem(
                id=line.id,
                stone_id=line.stone_id,
                line_no=line.line_no,
                quantity=line.quantity,
                carat=line.carat,
                price_per_carat=line.price_per_carat,
                total_price=line.total_price,
                cost_per_carat=line.cost_per_carat,
                gem_code=line.gem_code or (stone.gem_code if stone else None),
                stone_type=line.stone_type or (stone.stone_type if stone else None),
                match_kind=line.match_kind,
                stone_display_name=_stone_display_name(line, stone),
                stone_origin=stone.origin if stone else None,
                stone_grade=stone.grade if stone else None,
            ))

        data = {field: getattr(sale, field) for field in _SALE_FIELDS}
        return SaleView(
            **data,
            items=view_items,
            client_name=client.display_name if client else None,
            client_address=client.address if client else None,
            client_gst_number=client.gst_number if client else None,
            client_phone=client.phone if client else None,
            tax=TaxBreakdownView(
                gross=tax.gross,
                discount=tax.discount,
                taxable_amount=tax.taxable_amount,
                cgst=tax.cgst,
                sgst=tax.sgst,
                igst=tax.igst,
                total_tax=tax.total_tax,
                total_with_tax=tax.total_with_tax,
                gst_rate_percent=gst_rate_to_fraction(self.gst_rate) * Decimal("100"),
            ),
            totals_consistent=consistent,
        )
