"""
Inventory schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class InventoryItemBase(BaseModel):
    """Descriptive fields of a stone; freely editable"""
    stone_type: str = Field(..., min_length=1, description="Blue Sapphire, Ruby, Emerald, ...")
    grade: Optional[str] = None
    origin: Optional[str] = None
    carat: Decimal = Field(..., ge=0)
    price_per_carat: Decimal = Field(..., ge=0)
    cost_per_carat: Optional[Decimal] = Field(None, ge=0, description="Stocked cost basis, used for profit")
    supplier_name: Optional[str] = None
    certified: bool = False
    certificate_lab: Optional[str] = None
    notes: Optional[str] = None


class InventoryItemCreate(InventoryItemBase):
    """Create stone. quantity is the opening stock."""
    gem_code: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=0)


class InventoryItemUpdate(BaseModel):
    """Edit descriptors. Quantity is not editable here; use the adjust endpoint."""
    stone_type: Optional[str] = None
    grade: Optional[str] = None
    origin: Optional[str] = None
    carat: Optional[Decimal] = Field(None, ge=0)
    price_per_carat: Optional[Decimal] = Field(None, ge=0)
    cost_per_carat: Optional[Decimal] = Field(None, ge=0)
    supplier_name: Optional[str] = None
    certified: Optional[bool] = None
    certificate_lab: Optional[str] = None
    notes: Optional[str] = None


class InventoryItemResponse(InventoryItemBase):
    """Stone response"""
    id: UUID
    gem_code: str
    quantity: int
    is_available: bool
    total_price: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InventoryAdjustment(BaseModel):
    """Manual stock correction (restock, breakage, recount)"""
    quantity_delta: int = Field(..., description="Positive = add stock, negative = remove stock")
    notes: Optional[str] = Field(None, max_length=500)


class InventoryMovementResponse(BaseModel):
    """Audit row for one applied quantity change"""
    id: UUID
    item_id: UUID
    quantity_delta: int
    quantity_before: int
    quantity_after: int
    reason: str
    reference_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StoneResolutionResponse(BaseModel):
    """How a stone reference resolved"""
    reference: str
    match_kind: str = Field(..., description="EXACT, CODE, FUZZY or NOT_FOUND")
    is_fallback: bool
    confidence: float
    item: Optional[InventoryItemResponse] = None
