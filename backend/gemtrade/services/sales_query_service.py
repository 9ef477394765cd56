"""
Sales Query Service - read-only sale listings, single-sale views and dashboard figures
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from gemtrade.models import InventoryItem, Sale
from gemtrade.schemas.sale import SaleView, SalesSummary
from gemtrade.services.errors import SaleNotFound
from gemtrade.services.sale_read_model import SaleReadModelBuilder
from gemtrade.utils.gst import round_money


def _month_bounds(day: date):
    start = day.replace(day=1)
    next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return start, next_month - timedelta(days=1)


class SalesQueryService:
    """Loads sales with their clients and stones and turns them into SaleView objects"""

    @staticmethod
    def _views(db: Session, sales: List[Sale]) -> List[SaleView]:
        stone_ids = {line.stone_id for sale in sales for line in sale.items}
        stones = {}
        if stone_ids:
            stones = {s.id: s for s in db.query(InventoryItem).filter(InventoryItem.id.in_(stone_ids)).all()}
        builder = SaleReadModelBuilder()
        return [builder.build(sale, sale.items, sale.client, stones) for sale in sales]

    @staticmethod
    def get_sale_view(db: Session, sale_id: UUID) -> SaleView:
        sale = (
            db.query(Sale)
            .options(selectinload(Sale.items), selectinload(Sale.client))
            .filter(Sale.id == sale_id)
            .first()
        )
        if not sale:
            raise SaleNotFound(sale_id)
        return SalesQueryService._views(db, [sale])[0]

    @staticmethod
    def list_sale_views(
        db: Session,
        client_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        q: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SaleView]:
        """Newest first. q matches a substring of the sale code, case-insensitive."""
        query = db.query(Sale).options(selectinload(Sale.items), selectinload(Sale.client))
        if client_id:
            query = query.filter(Sale.client_id == client_id)
        if start_date:
            query = query.filter(Sale.date >= start_date)
        if end_date:
            query = query.filter(Sale.date <= end_date)
        if q and q.strip():
            query = query.filter(func.lower(Sale.sale_code).like(f"%{q.strip().lower()}%"))
        sales = (
            query.order_by(Sale.date.desc(), Sale.created_at.desc(), Sale.sale_code.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return SalesQueryService._views(db, sales)

    @staticmethod
    def dashboard_summary(db: Session, today: Optional[date] = None) -> SalesSummary:
        """Current-month sales figures plus the value of stock on hand."""
        start, end = _month_bounds(today or date.today())
        totals = db.query(
            func.coalesce(func.sum(Sale.total_amount), 0),
            func.coalesce(func.sum(Sale.total_with_tax), 0),
            func.coalesce(func.sum(Sale.profit), 0),
            func.count(Sale.id),
        ).filter(Sale.date >= start, Sale.date <= end).one()

        available = db.query(InventoryItem).filter(InventoryItem.is_available == True).all()  # noqa: E712
        inventory_value = sum((Decimal(str(item.total_price)) for item in available), Decimal("0"))

        return SalesSummary(
            period_start=start,
            period_end=end,
            sales_total=round_money(totals[0]),
            sales_total_with_tax=round_money(totals[1]),
            profit_total=round_money(totals[2]),
            sales_count=int(totals[3] or 0),
            inventory_value=round_money(inventory_value),
            available_items=len(available),
        )
