"""
Sales schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime, date
from uuid import UUID
from decimal import Decimal

PaymentStatus = Literal["Paid", "Partial", "Unpaid"]


class SaleLineItemDraft(BaseModel):
    """One stone-and-quantity entry submitted with a sale"""
    stone_ref: str = Field(..., min_length=1, description="Inventory id (UUID) or gem code, e.g. RUBY-001")
    quantity: int = Field(default=1, ge=1)
    carat: Optional[Decimal] = Field(None, ge=0, description="Defaults to the stone's carat; also the fuzzy-match hint")
    price_per_carat: Optional[Decimal] = Field(None, ge=0, description="Defaults to the stone's price per carat")
    stone_type: Optional[str] = Field(None, description="Fuzzy-match hint for legacy references (with carat)")


class SaleBase(BaseModel):
    """Sale header fields"""
    # Required and without a default so the field name does not shadow datetime.date below
    date: date
    client_id: Optional[UUID] = None
    payment_status: PaymentStatus = "Unpaid"
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    is_out_of_state: bool = False
    notes: Optional[str] = None
    buyers_order_number: Optional[str] = None
    buyers_order_date: Optional[date] = None
    dispatch_doc_no: Optional[str] = None
    delivery_note_date: Optional[date] = None
    dispatched_through: Optional[str] = None
    destination: Optional[str] = None
    terms_of_delivery: Optional[str] = None
    waiting_period: Optional[str] = None
    is_trustworthy: Optional[bool] = None


class SaleCreate(SaleBase):
    """
    Create sale request, also the full replacement body for PUT.
    Line items are resolved, validated and deducted from stock.
    """
    sale_code: Optional[str] = Field(None, max_length=100, description="Leave empty to auto-number (SALE-YYYY-NNNNNN)")
    items: List[SaleLineItemDraft] = Field(..., min_length=1)


class SaleLineItemResponse(BaseModel):
    """Sale line item response"""
    id: UUID
    stone_id: UUID
    line_no: int
    quantity: int
    carat: Decimal
    price_per_carat: Decimal
    total_price: Decimal
    cost_per_carat: Optional[Decimal] = None
    gem_code: Optional[str] = None
    stone_type: Optional[str] = None
    match_kind: Optional[str] = None

    class Config:
        from_attributes = True


class SaleResponse(SaleBase):
    """Sale as stored"""
    id: UUID
    sale_code: str
    total_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_with_tax: Decimal
    profit: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[SaleLineItemResponse] = []

    class Config:
        from_attributes = True


class TaxBreakdownView(BaseModel):
    """Tax breakdown recomputed from line items"""
    gross: Decimal
    discount: Decimal
    taxable_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total_with_tax: Decimal
    gst_rate_percent: Decimal


class SaleViewItem(SaleLineItemResponse):
    """Line item with stone display fields"""
    stone_display_name: str
    stone_origin: Optional[str] = None
    stone_grade: Optional[str] = None


class SaleView(SaleResponse):
    """Denormalized sale for display (invoice screen, sales table)"""
    items: List[SaleViewItem] = []
    client_name: Optional[str] = None
    client_address: Optional[str] = None
    client_gst_number: Optional[str] = None
    client_phone: Optional[str] = None
    tax: TaxBreakdownView
    totals_consistent: bool = Field(..., description="Stored totals match the recomputed breakdown")


class SalesSummary(BaseModel):
    """Dashboard figures"""
    period_start: date
    period_end: date
    sales_total: Decimal
    sales_total_with_tax: Decimal
    sales_count: int
    profit_total: Decimal
    inventory_value: Decimal
    available_items: int
