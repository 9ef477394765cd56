"""
Sales models
"""
from sqlalchemy import Column, String, Integer, Numeric, Date, ForeignKey, Text, Boolean, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from gemtrade.database import Base


class Sale(Base):
    """Sale header. Tax/total columns are always the tax calculator's output for the current items."""
    __tablename__ = "sales"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_code = Column(String(100), nullable=False, unique=True)  # SALE-2026-000001
    date = Column(Date, nullable=False)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    payment_status = Column(String(20), nullable=False, default="Unpaid")  # Paid, Partial, Unpaid
    discount = Column(Numeric(15, 2), nullable=False, default=0)
    is_out_of_state = Column(Boolean, nullable=False, default=False)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)  # Pre-tax, after discount
    cgst = Column(Numeric(15, 2), nullable=False, default=0)
    sgst = Column(Numeric(15, 2), nullable=False, default=0)
    igst = Column(Numeric(15, 2), nullable=False, default=0)
    total_with_tax = Column(Numeric(15, 2), nullable=False, default=0)
    profit = Column(Numeric(15, 2), nullable=True)  # NULL when a line has no cost basis
    notes = Column(Text)
    # Invoice fields
    buyers_order_number = Column(String(100))
    buyers_order_date = Column(Date)
    dispatch_doc_no = Column(String(100))
    delivery_note_date = Column(Date)
    dispatched_through = Column(String(255))
    destination = Column(String(255))
    terms_of_delivery = Column(Text)
    waiting_period = Column(String(100))
    is_trustworthy = Column(Boolean)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="sales")
    items = relationship("SaleLineItem", back_populates="sale", order_by="SaleLineItem.line_no")


class SaleLineItem(Base):
    """Sale line item. carat/price/cost are snapshots taken when the line was written."""
    __tablename__ = "sale_line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = Column(Uuid, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False)
    stone_id = Column(Uuid, ForeignKey("inventory_items.id"), nullable=False)
    line_no = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    carat = Column(Numeric(10, 3), nullable=False)
    price_per_carat = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)  # quantity x carat x price_per_carat
    cost_per_carat = Column(Numeric(15, 2), nullable=True)
    # Cached stone details for display (snapshot at time of sale)
    gem_code = Column(String(100))
    stone_type = Column(String(100))
    match_kind = Column(String(20))  # EXACT, CODE, FUZZY - how stone_ref was resolved
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    # Relationships
    sale = relationship("Sale", back_populates="items")
    stone = relationship("InventoryItem")
