"""
Gemstone inventory models
InventoryItem - one stocked stone lot (gem code, descriptors, price, quantity on hand)
InventoryMovement - append-only audit of every quantity change
"""
from sqlalchemy import Column, String, Integer, Numeric, Boolean, Text, ForeignKey, CheckConstraint, Index, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from gemtrade.database import Base


class InventoryItem(Base):
    """
    Gemstone inventory record.

    quantity and is_available are written only by InventoryLedgerService;
    is_available always mirrors quantity > 0.
    """
    __tablename__ = "inventory_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    gem_code = Column(String(100), nullable=False, unique=True)  # Business code, e.g. RUBY-001
    stone_type = Column(String(100), nullable=False)  # Blue Sapphire, Ruby, Emerald, ...
    grade = Column(String(50))
    origin = Column(String(100))  # Jaipur, Surat, Sri Lanka, ...
    carat = Column(Numeric(10, 3), nullable=False, default=0)  # 1.015 ct
    price_per_carat = Column(Numeric(15, 2), nullable=False, default=0)
    cost_per_carat = Column(Numeric(15, 2), nullable=True)  # Stocked cost basis, used for profit
    quantity = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=False)
    supplier_name = Column(String(255))
    certified = Column(Boolean, default=False)
    certificate_lab = Column(String(50))  # IGI, IIGJ, GJEPC
    notes = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    movements = relationship("InventoryMovement", back_populates="item", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="inventory_quantity_not_negative"),
        CheckConstraint("carat >= 0", name="inventory_carat_not_negative"),
        CheckConstraint("price_per_carat >= 0", name="inventory_price_not_negative"),
        # RUBY-001 and ruby-001 are the same stone code
        Index("uq_inventory_items_gem_code_upper", func.upper(gem_code), unique=True),
    )

    @property
    def total_price(self):
        """carat x price_per_carat. Informational; does not scale with quantity."""
        return (self.carat or 0) * (self.price_per_carat or 0)

    @property
    def display_name(self) -> str:
        return f"{self.stone_type} ({self.gem_code})"


class InventoryMovement(Base):
    """
    Audit log of quantity changes made through the ledger adjuster.
    reason: SALE | SALE_REVERSAL | COMPENSATION | ADJUSTMENT
    """
    __tablename__ = "inventory_movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    item_id = Column(Uuid, ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False)
    quantity_delta = Column(Integer, nullable=False)  # Positive = restore/add, negative = consume
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False)
    reference_id = Column(Uuid, nullable=True)  # Sale id when the change came from a sale
    notes = Column(String(500))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    item = relationship("InventoryItem", back_populates="movements")

    __table_args__ = (
        CheckConstraint("quantity_delta != 0", name="movement_delta_not_zero"),
        {"comment": "Append-only. One row per applied quantity delta."},
    )
