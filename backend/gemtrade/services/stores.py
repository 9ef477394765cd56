"""
Store adapters - the inventory and sale persistence contracts used by the sales engine

Every write method commits on its own, the way the hosted datastore applies
each REST call independently. Nothing here spans header, items and
inventory; SaleTransactionService owns ordering and compensation.
SQLAlchemy errors, on reads as well as writes, are rolled back and
re-raised as PersistenceFailed.
"""
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gemtrade.models import InventoryItem, InventoryMovement, Sale, SaleLineItem
from gemtrade.services.document_service import DocumentService
from gemtrade.services.errors import PersistenceFailed

logger = logging.getLogger(__name__)


@contextmanager
def _write(db: Session, operation: str):
    """Run a write and commit it; roll back and raise PersistenceFailed on any database error."""
    try:
        yield
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed: %s", operation, e)
        raise PersistenceFailed(operation, str(e)) from e


@contextmanager
def _read(db: Session, operation: str):
    """Run a query; a database error rolls the session back and becomes PersistenceFailed."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed: %s", operation, e)
        raise PersistenceFailed(operation, str(e)) from e


class InventoryStore:
    """Inventory reads and the conditional quantity write."""

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, item_id: UUID) -> Optional[InventoryItem]:
        # populate_existing: never trust an identity-map copy for quantity
        with _read(self.db, "Get inventory item"):
            return (
                self.db.query(InventoryItem)
                .populate_existing()
                .filter(InventoryItem.id == item_id)
                .first()
            )

    def get_item_by_code(self, gem_code: str) -> Optional[InventoryItem]:
        """Case-insensitive; gem codes are unique on upper(gem_code)."""
        code = (gem_code or "").strip()
        if not code:
            return None
        with _read(self.db, "Get inventory item by code"):
            return (
                self.db.query(InventoryItem)
                .populate_existing()
                .filter(func.upper(InventoryItem.gem_code) == code.upper())
                .one_or_none()
            )

    def find_by_type_and_carat(self, stone_type: str, low: Decimal, high: Decimal) -> List[InventoryItem]:
        with _read(self.db, "Find inventory items by type and carat"):
            return (
                self.db.query(InventoryItem)
                .filter(
                    func.lower(InventoryItem.stone_type) == stone_type.strip().lower(),
                    InventoryItem.carat >= low,
                    InventoryItem.carat <= high,
                )
                .order_by(InventoryItem.gem_code.asc())
                .all()
            )

    def update_quantity(
        self,
        item_id: UUID,
        expected_quantity: int,
        new_quantity: int,
        movement: Dict[str, Any],
    ) -> bool:
        """
        Compare-and-swap on quantity.

        Sets quantity/is_available only if the stored quantity still equals expected_quantity,
        and records the movement in the same commit. Returns False when another writer got there first.
        """
        with _write(self.db, "Update inventory quantity"):
            updated = (
                self.db.query(InventoryItem)
                .filter(
                    InventoryItem.id == item_id,
                    InventoryItem.quantity == expected_quantity,
                )
                .update(
                    {
                        InventoryItem.quantity: new_quantity,
                        InventoryItem.is_available: new_quantity > 0,
                        InventoryItem.updated_at: func.now(),
                    },
                    synchronize_session=False,
                )
            )
            if updated == 1:
                self.db.add(InventoryMovement(item_id=item_id, **movement))
        return updated == 1


class SaleStore:
    """Sale header and line-item persistence."""

    def __init__(self, db: Session):
        self.db = db

    def get_sale(self, sale_id: UUID) -> Optional[Sale]:
        with _read(self.db, "Get sale"):
            return self.db.query(Sale).filter(Sale.id == sale_id).first()

    def get_line_items(self, sale_id: UUID) -> List[SaleLineItem]:
        with _read(self.db, "Get sale line items"):
            return (
                self.db.query(SaleLineItem)
                .filter(SaleLineItem.sale_id == sale_id)
                .order_by(SaleLineItem.line_no.asc())
                .all()
            )

    def insert_sale(self, header: Dict[str, Any]) -> Sale:
        """Insert a sale header. Mints a sale code when header has none."""
        with _write(self.db, "Insert sale"):
            if not header.get("sale_code"):
                header = dict(header, sale_code=DocumentService.get_sale_code(self.db, header["date"]))
            sale = Sale(**header)
            self.db.add(sale)
            self.db.flush()
            sale_id = sale.id
        return self.get_sale(sale_id)

    def replace_line_items(self, sale_id: UUID, items: Iterable[Dict[str, Any]]) -> None:
        """Delete every line of the sale and insert the given set, in one commit."""
        with _write(self.db, "Replace sale line items"):
            self.db.query(SaleLineItem).filter(SaleLineItem.sale_id == sale_id).delete(synchronize_session=False)
            for line_no, row in enumerate(items):
                self.db.add(SaleLineItem(sale_id=sale_id, line_no=line_no, **row))

    def update_sale(self, sale_id: UUID, fields: Dict[str, Any]) -> None:
        with _write(self.db, "Update sale"):
            sale = self.db.query(Sale).filter(Sale.id == sale_id).first()
            if sale is None:
                raise PersistenceFailed("Update sale", f"sale {sale_id} no longer exists")
            for key, value in fields.items():
                setattr(sale, key, value)

    def delete_line_items(self, sale_id: UUID) -> int:
        with _write(self.db, "Delete sale line items"):
            count = self.db.query(SaleLineItem).filter(SaleLineItem.sale_id == sale_id).delete(synchronize_session=False)
        return count

    def delete_sale(self, sale_id: UUID) -> int:
        with _write(self.db, "Delete sale"):
            count = self.db.query(Sale).filter(Sale.id == sale_id).delete(synchronize_session=False)
        return count
