"""
Sale Transaction Service - create, edit and delete sales while keeping
stone quantities, line items and tax totals consistent

The datastore applies each write on its own (see services/stores.py), so a
sale is a sequence of independent writes:

  create: resolve -> validate -> insert header -> insert items -> consume stock
  update: resolve -> validate -> restore old stock -> replace items -> consume stock -> update header
  delete: restore stock -> delete items -> delete header

Validation happens before the first write. Once writing starts, every step
registers its undo (header and line-item undos before the write itself, so a
write that committed but failed on read-back is still undone); if a later step
fails the undos run in reverse order.
If an undo itself fails the ledger is inconsistent and CompensationFailed
is raised for an operator to reconcile. Nothing is retried automatically.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from gemtrade.config import settings
from gemtrade.models import InventoryItem, Sale, SaleLineItem
from gemtrade.schemas.sale import SaleCreate, SaleLineItemDraft
from gemtrade.services.errors import (
    CompensationFailed,
    InsufficientInventory,
    InventoryUpdateFailed,
    PersistenceFailed,
    SaleCreationFailed,
    SaleNotFound,
    SaleTransactionError,
    StoneNotFound,
)
from gemtrade.services.inventory_ledger_service import (
    InventoryLedgerService,
    REASON_COMPENSATION,
    REASON_SALE,
    REASON_SALE_REVERSAL,
)
from gemtrade.services.stone_resolver import StoneResolution, StoneResolver
from gemtrade.services.stores import InventoryStore, SaleStore
from gemtrade.services.tax_service import TaxBreakdown, compute_profit, compute_tax, line_total
from gemtrade.utils.gst import round_carat, round_money

logger = logging.getLogger(__name__)

_WRITE_ERRORS = (PersistenceFailed, InventoryUpdateFailed)


@dataclass
class ResolvedLine:
    """
    A draft line bound to the inventory record its reference resolved to.

    carat and price_per_carat come back rounded to the column scale, so line and
    sale totals are computed from exactly what gets stored.
    """
    index: int
    draft: SaleLineItemDraft
    resolution: StoneResolution

    @property
    def item(self) -> InventoryItem:
        return self.resolution.item

    @property
    def quantity(self) -> int:
        return self.draft.quantity

    @property
    def carat(self) -> Decimal:
        return round_carat(self.draft.carat if self.draft.carat is not None else self.item.carat)

    @property
    def price_per_carat(self) -> Decimal:
        if self.draft.price_per_carat is not None:
            return round_money(self.draft.price_per_carat)
        return round_money(self.item.price_per_carat)

    @property
    def cost_per_carat(self) -> Optional[Decimal]:
        return self.item.cost_per_carat

    def to_row(self) -> Dict[str, Any]:
        return {
            "stone_id": self.item.id,
            "quantity": self.quantity,
            "carat": self.carat,
            "price_per_carat": self.price_per_carat,
            "total_price": line_total(self.quantity, self.carat, self.price_per_carat),
            "cost_per_carat": self.cost_per_carat,
            "gem_code": self.item.gem_code,
            "stone_type": self.item.stone_type,
            "match_kind": self.resolution.kind.value,
        }


def _row_from_line(line: SaleLineItem) -> Dict[str, Any]:
    """Snapshot of a stored line, detached from the session, for putting it back later."""
    return {
        "stone_id": line.stone_id,
        "quantity": line.quantity,
        "carat": line.carat,
        "price_per_carat": line.price_per_carat,
        "total_price": line.total_price,
        "cost_per_carat": line.cost_per_carat,
        "gem_code": line.gem_code,
        "stone_type": line.stone_type,
        "match_kind": line.match_kind,
    }


class Compensation:
    """Undo journal for one sale operation."""

    def __init__(self, operation: str):
        self.operation = operation
        self.applied_deltas: List[Dict[str, Any]] = []
        self._steps: List[Tuple[str, Callable[[], Any]]] = []

    def record(self, description: str, undo: Callable[[], Any]) -> None:
        self._steps.append((description, undo))

    def record_delta(self, item_id: UUID, gem_code: str, delta: int) -> None:
        self.applied_deltas.append({"item_id": str(item_id), "gem_code": gem_code, "delta": delta})

    def run(self, error: Exception) -> None:
        """Run every undo, newest first. Raises CompensationFailed if any undo fails."""
        completed: List[str] = []
        failed: List[str] = []
        for description, undo in reversed(self._steps):
            try:
                undo()
                completed.append(description)
            except SaleTransactionError as e:
                logger.error("%s: compensation step '%s' failed: %s", self.operation, description, e)
                failed.append(f"{description}: {e}")
        self._steps = []
        if failed:
            logger.critical(
                "%s: LEDGER INCONSISTENT, manual reconciliation required. original error: %s; "
                "failed steps: %s; completed steps: %s; applied deltas: %s",
                self.operation, error, failed, completed, self.applied_deltas,
            )
            raise CompensationFailed(self.operation, error, failed, completed) from error
        if completed:
            logger.warning("%s: compensated after %s (%s)", self.operation, error, "; ".join(completed))


class SaleTransactionService:
    """Create / update / delete sales against the inventory ledger."""

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryStore(db)
        self.sales = SaleStore(db)
        self.resolver = StoneResolver(self.inventory)
        self.ledger = InventoryLedgerService(self.inventory)
        self.gst_rate = settings.GST_RATE_PERCENT

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_sale(self, draft: SaleCreate) -> Sale:
        """
        Record a new sale and deduct its stones from inventory.

        Raises:
            StoneNotFound / InsufficientInventory: before any write
            SaleCreationFailed: a write failed; earlier writes were compensated
            CompensationFailed: a write failed and could not be fully undone
        """
        lines = self._resolve_lines(draft.items)
        self._validate_quantities(lines)
        tax = self._compute_tax(lines, draft.discount, draft.is_out_of_state)
        header = self._header_fields(draft, tax, compute_profit(lines, tax.taxable_amount))

        sale_id = uuid4()
        header["id"] = sale_id
        sale_code = header.get("sale_code") or str(sale_id)
        compensation = Compensation(f"Create sale {sale_code}")
        try:
            # Undos for header and items are recorded before the write; both are
            # no-ops when the write never landed.
            compensation.record(f"delete sale {sale_code}", lambda: self.sales.delete_sale(sale_id))
            sale_code = self.sales.insert_sale(header).sale_code
            compensation.operation = f"Create sale {sale_code}"

            compensation.record(f"delete line items of {sale_code}", lambda: self.sales.delete_line_items(sale_id))
            self.sales.replace_line_items(sale_id, [line.to_row() for line in lines])

            for line in lines:
                self._consume(line.item.id, line.item.gem_code, line.quantity, sale_id, compensation)
        except InsufficientInventory as e:
            # Stock sold elsewhere between validation and write
            compensation.run(e)
            raise
        except _WRITE_ERRORS as e:
            logger.error(
                "%s failed: %s. Deltas applied before failure: %s",
                compensation.operation, e, compensation.applied_deltas,
            )
            compensation.run(e)
            raise SaleCreationFailed(str(e), compensation.applied_deltas) from e

        logger.info(
            "Sale %s created: %s line(s), total_with_tax=%s",
            sale_code, len(lines), tax.total_with_tax,
        )
        return self.sales.get_sale(sale_id)

    def update_sale(self, sale_id: UUID, draft: SaleCreate) -> Sale:
        """
        Replace a sale's header and item set.

        Inventory-wise this equals deleting the old sale and creating the new one:
        new quantities are validated against stock as it will be after the old
        items are restored, then old items are restored and new ones consumed.
        """
        sale = self.sales.get_sale(sale_id)
        if sale is None:
            raise SaleNotFound(sale_id)
        sale_code = sale.sale_code
        old_rows = [_row_from_line(li) for li in self.sales.get_line_items(sale_id)]
        restored = Counter()
        for row in old_rows:
            restored[row["stone_id"]] += row["quantity"]

        lines = self._resolve_lines(draft.items)
        self._validate_quantities(lines, restored=restored)
        tax = self._compute_tax(lines, draft.discount, draft.is_out_of_state)
        header = self._header_fields(draft, tax, compute_profit(lines, tax.taxable_amount))

        compensation = Compensation(f"Update sale {sale_code}")
        try:
            self._restore_rows(old_rows, sale_id, compensation)

            compensation.record(
                f"put back original line items of {sale_code}",
                lambda: self.sales.replace_line_items(sale_id, old_rows),
            )
            self.sales.replace_line_items(sale_id, [line.to_row() for line in lines])

            for line in lines:
                self._consume(line.item.id, line.item.gem_code, line.quantity, sale_id, compensation)

            self.sales.update_sale(sale_id, header)
        except InsufficientInventory as e:
            compensation.run(e)
            raise
        except _WRITE_ERRORS as e:
            logger.error(
                "%s failed: %s. Deltas applied before failure: %s",
                compensation.operation, e, compensation.applied_deltas,
            )
            compensation.run(e)
            raise

        logger.info(
            "Sale %s updated: %s line(s), total_with_tax=%s",
            header.get("sale_code", sale_code), len(lines), tax.total_with_tax,
        )
        return self.sales.get_sale(sale_id)

    def delete_sale(self, sale_id: UUID) -> None:
        """
        Delete a sale after putting its stones back into inventory.

        Restoration is a precondition: if any stone cannot be restored, the
        restorations already made are undone and nothing is deleted.
        """
        sale = self.sales.get_sale(sale_id)
        if sale is None:
            raise SaleNotFound(sale_id)
        sale_code = sale.sale_code
        old_rows = [_row_from_line(li) for li in self.sales.get_line_items(sale_id)]

        compensation = Compensation(f"Delete sale {sale_code}")
        try:
            self._restore_rows(old_rows, sale_id, compensation)

            compensation.record(
                f"put back line items of {sale_code}",
                lambda: self.sales.replace_line_items(sale_id, old_rows),
            )
            self.sales.delete_line_items(sale_id)

            self.sales.delete_sale(sale_id)
        except _WRITE_ERRORS as e:
            logger.error(
                "%s failed: %s. Deltas applied before failure: %s",
                compensation.operation, e, compensation.applied_deltas,
            )
            compensation.run(e)
            raise

        logger.info("Sale %s deleted; %s line(s) restored to inventory", sale_code, len(old_rows))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve_lines(self, drafts: List[SaleLineItemDraft]) -> List[ResolvedLine]:
        """Resolve every line; report all unresolved references together."""
        lines: List[ResolvedLine] = []
        unresolved: List[Dict[str, Any]] = []
        for index, draft in enumerate(drafts):
            resolution = self.resolver.resolve(draft.stone_ref, draft.stone_type, draft.carat)
            if not resolution.found:
                unresolved.append({"reference": draft.stone_ref, "line_index": index})
                continue
            lines.append(ResolvedLine(index, draft, resolution))
        if unresolved:
            first = unresolved[0]
            raise StoneNotFound(first["reference"], first["line_index"], unresolved)
        return lines

    def _validate_quantities(self, lines: List[ResolvedLine], restored: Optional[Counter] = None) -> None:
        """
        Requested quantity per stone (summed over lines) must not exceed what is on hand,
        plus what this operation restores first (update).
        """
        restored = restored or Counter()
        requested: Dict[UUID, int] = {}
        first_line: Dict[UUID, ResolvedLine] = {}
        for line in lines:
            requested[line.item.id] = requested.get(line.item.id, 0) + line.quantity
            first_line.setdefault(line.item.id, line)
        for item_id, quantity in requested.items():
            line = first_line[item_id]
            available = int(line.item.quantity or 0) + restored.get(item_id, 0)
            if quantity > available:
                raise InsufficientInventory(
                    line.item.gem_code, quantity, available, item_id=item_id, line_index=line.index
                )

    def _compute_tax(self, lines: List[ResolvedLine], discount, is_out_of_state: bool) -> TaxBreakdown:
        return compute_tax(lines, discount, is_out_of_state, self.gst_rate)

    def _header_fields(self, draft: SaleCreate, tax: TaxBreakdown, profit) -> Dict[str, Any]:
        fields = draft.model_dump(exclude={"items"})
        if not fields.get("sale_code"):
            fields.pop("sale_code", None)
        fields.update({
            "discount": tax.discount,
            "total_amount": tax.taxable_amount,
            "cgst": tax.cgst,
            "sgst": tax.sgst,
            "igst": tax.igst,
            "total_with_tax": tax.total_with_tax,
            "profit": profit,
        })
        return fields

    def _apply(
        self,
        item_id: UUID,
        gem_code: str,
        delta: int,
        reason: str,
        sale_id: UUID,
        compensation: Compensation,
        strict: bool = False,
    ) -> None:
        """
        Apply one ledger delta and journal its inverse.

        The inverse is journaled whenever the quantity write committed, including
        when the ledger reports InventoryUpdateFailed(applied=True) because only
        the read-back failed.
        """
        applied = False
        try:
            self.ledger.apply_delta(item_id, delta, reason, reference_id=sale_id, strict=strict)
            applied = True
        except InventoryUpdateFailed as e:
            applied = e.applied
            raise
        finally:
            if applied:
                compensation.record_delta(item_id, gem_code, delta)
                if delta < 0:
                    compensation.record(
                        f"restore {-delta} x {gem_code}",
                        lambda: self.ledger.apply_delta(item_id, -delta, REASON_COMPENSATION, reference_id=sale_id),
                    )
                else:
                    compensation.record(
                        f"re-consume {delta} x {gem_code}",
                        lambda: self.ledger.apply_delta(
                            item_id, -delta, REASON_COMPENSATION, reference_id=sale_id, strict=True
                        ),
                    )

    def _consume(self, item_id: UUID, gem_code: str, quantity: int, sale_id: UUID, compensation: Compensation) -> None:
        self._apply(item_id, gem_code, -quantity, REASON_SALE, sale_id, compensation, strict=True)

    def _restore_rows(self, rows: List[Dict[str, Any]], sale_id: UUID, compensation: Compensation) -> None:
        for row in rows:
            self._apply(row["stone_id"], row["gem_code"], row["quantity"], REASON_SALE_REVERSAL, sale_id, compensation)
