"""
Inventory API routes
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gemtrade.database import get_db
from gemtrade.models import InventoryItem, InventoryMovement
from gemtrade.schemas.inventory import (
    InventoryAdjustment,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryMovementResponse,
    StoneResolutionResponse,
)
from gemtrade.services.errors import InsufficientInventory, InventoryUpdateFailed
from gemtrade.services.inventory_ledger_service import InventoryLedgerService, REASON_ADJUSTMENT
from gemtrade.services.stone_resolver import StoneResolver
from gemtrade.services.stores import InventoryStore

router = APIRouter()


def _get_item_or_404(db: Session, item_id: UUID) -> InventoryItem:
    item = db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Stone not found")
    return item


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(item: InventoryItemCreate, db: Session = Depends(get_db)):
    """Add a stone with its opening stock"""
    db_item = InventoryItem(
        **item.model_dump(),
        is_available=item.quantity > 0,
    )
    db.add(db_item)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=f"Gem code {item.gem_code} already exists")
    db.refresh(db_item)
    return db_item


@router.get("", response_model=List[InventoryItemResponse])
def list_items(
    available_only: bool = Query(False),
    stone_type: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Gem code search"),
    db: Session = Depends(get_db),
):
    """List stones by gem code"""
    query = db.query(InventoryItem)
    if available_only:
        query = query.filter(InventoryItem.is_available == True)  # noqa: E712
    if stone_type:
        query = query.filter(func.lower(InventoryItem.stone_type) == stone_type.strip().lower())
    if q and q.strip():
        query = query.filter(func.lower(InventoryItem.gem_code).like(f"%{q.strip().lower()}%"))
    return query.order_by(InventoryItem.gem_code.asc()).all()


@router.get("/resolve", response_model=StoneResolutionResponse)
def resolve_stone(
    ref: str = Query(..., description="Inventory id or gem code"),
    stone_type: Optional[str] = Query(None),
    carat: Optional[Decimal] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    """Show how a stone reference would resolve on a sale line (id, gem code or fuzzy fallback)"""
    resolution = StoneResolver(InventoryStore(db)).resolve(ref, stone_type, carat)
    return StoneResolutionResponse(
        reference=resolution.reference,
        match_kind=resolution.kind.value,
        is_fallback=resolution.is_fallback,
        confidence=resolution.confidence,
        item=InventoryItemResponse.model_validate(resolution.item) if resolution.item else None,
    )


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_item(item_id: UUID, db: Session = Depends(get_db)):
    """Get stone by ID"""
    return _get_item_or_404(db, item_id)


@router.patch("/{item_id}", response_model=InventoryItemResponse)
def update_item(item_id: UUID, update: InventoryItemUpdate, db: Session = Depends(get_db)):
    """Edit stone descriptors and prices (not quantity)"""
    db_item = _get_item_or_404(db, item_id)
    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(db_item, key, value)
    db.commit()
    db.refresh(db_item)
    return db_item


@router.post("/{item_id}/adjust", response_model=InventoryItemResponse)
def adjust_stock(item_id: UUID, adjustment: InventoryAdjustment, db: Session = Depends(get_db)):
    """
    Manual stock correction

    Goes through the same ledger path as sales. Removing more than is on hand is rejected.
    """
    _get_item_or_404(db, item_id)
    if adjustment.quantity_delta == 0:
        raise HTTPException(status_code=400, detail="quantity_delta must not be 0")
    ledger = InventoryLedgerService(InventoryStore(db))
    try:
        return ledger.apply_delta(
            item_id, adjustment.quantity_delta, REASON_ADJUSTMENT, strict=True, notes=adjustment.notes
        )
    except InsufficientInventory as e:
        raise HTTPException(status_code=400, detail=e.to_detail())
    except InventoryUpdateFailed as e:
        raise HTTPException(status_code=500, detail=e.to_detail())


@router.get("/{item_id}/movements", response_model=List[InventoryMovementResponse])
def list_movements(item_id: UUID, db: Session = Depends(get_db)):
    """Quantity change history, newest first"""
    _get_item_or_404(db, item_id)
    return (
        db.query(InventoryMovement)
        .filter(InventoryMovement.item_id == item_id)
        .order_by(InventoryMovement.created_at.desc())
        .all()
    )
