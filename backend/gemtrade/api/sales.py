"""
Sales API routes
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from gemtrade.database import get_db
from gemtrade.schemas.sale import SaleCreate, SaleView, SalesSummary
from gemtrade.services.errors import (
    CompensationFailed,
    InsufficientInventory,
    SaleNotFound,
    SaleTransactionError,
    StoneNotFound,
)
from gemtrade.services.sale_service import SaleTransactionService
from gemtrade.services.sales_query_service import SalesQueryService

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: SaleTransactionError) -> HTTPException:
    """Structured error for the UI: kind, message and the offending row/quantities."""
    if isinstance(exc, SaleNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (StoneNotFound, InsufficientInventory)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, CompensationFailed):
        logger.critical("Returning CompensationFailed to caller: %s", exc)
    return HTTPException(status_code=code, detail=exc.to_detail())


@router.get("/summary", response_model=SalesSummary)
def get_sales_summary(
    as_of: Optional[date] = Query(None, description="Any day in the month to summarise; defaults to today"),
    db: Session = Depends(get_db),
):
    """Current-month sales total/count/profit and value of available stock"""
    return SalesQueryService.dashboard_summary(db, as_of)


@router.get("", response_model=List[SaleView])
def list_sales(
    client_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    q: Optional[str] = Query(None, description="Sale code search"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List sales, newest first"""
    return SalesQueryService.list_sale_views(db, client_id, start_date, end_date, q, limit, offset)


@router.post("", response_model=SaleView, status_code=status.HTTP_201_CREATED)
def create_sale(sale: SaleCreate, db: Session = Depends(get_db)):
    """
    Record a sale

    Resolves each line's stone (id or gem code), checks stock, stores the sale with
    computed CGST/SGST or IGST, and deducts the sold quantities from inventory.
    """
    try:
        created = SaleTransactionService(db).create_sale(sale)
        return SalesQueryService.get_sale_view(db, created.id)
    except SaleTransactionError as e:
        raise _http_error(e)


@router.get("/{sale_id}", response_model=SaleView)
def get_sale(sale_id: UUID, db: Session = Depends(get_db)):
    """Get sale with client, stone display fields and recomputed tax breakdown"""
    try:
        return SalesQueryService.get_sale_view(db, sale_id)
    except SaleNotFound as e:
        raise _http_error(e)


@router.put("/{sale_id}", response_model=SaleView)
def update_sale(sale_id: UUID, sale: SaleCreate, db: Session = Depends(get_db)):
    """
    Replace a sale's header and items

    Old items go back into stock before the new ones are checked and deducted.
    """
    try:
        SaleTransactionService(db).update_sale(sale_id, sale)
        return SalesQueryService.get_sale_view(db, sale_id)
    except SaleTransactionError as e:
        raise _http_error(e)


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(sale_id: UUID, db: Session = Depends(get_db)):
    """Delete a sale; its stones are returned to inventory first"""
    try:
        SaleTransactionService(db).delete_sale(sale_id)
    except SaleTransactionError as e:
        raise _http_error(e)
    return None
