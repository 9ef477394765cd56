"""
Inventory Ledger Service - the single write path for stone quantity

Every change to InventoryItem.quantity / is_available goes through
apply_delta: sales consume (negative delta), reversals and restocks
restore (positive delta). Writes are compare-and-swap on the quantity
that was read, retried a bounded number of times when a concurrent
writer changed it first.
"""
import logging
from typing import Optional
from uuid import UUID

from gemtrade.config import settings
from gemtrade.models import InventoryItem
from gemtrade.services.errors import InsufficientInventory, InventoryUpdateFailed, PersistenceFailed
from gemtrade.services.stores import InventoryStore

logger = logging.getLogger(__name__)

REASON_SALE = "SALE"
REASON_SALE_REVERSAL = "SALE_REVERSAL"
REASON_COMPENSATION = "COMPENSATION"
REASON_ADJUSTMENT = "ADJUSTMENT"


class InventoryLedgerService:
    """Applies signed quantity deltas to inventory items."""

    def __init__(self, store: InventoryStore, max_retries: Optional[int] = None):
        self.store = store
        self.max_retries = settings.INVENTORY_CAS_MAX_RETRIES if max_retries is None else max_retries

    def apply_delta(
        self,
        item_id: UUID,
        delta: int,
        reason: str,
        reference_id: Optional[UUID] = None,
        strict: bool = False,
        notes: Optional[str] = None,
    ) -> InventoryItem:
        """
        Apply delta to the item's quantity and return the updated item.

        new quantity = max(0, current + delta); is_available = new quantity > 0.
        strict=True refuses a consumption larger than the quantity on hand
        (InsufficientInventory) instead of clamping at zero.

        Raises:
            InventoryUpdateFailed: item missing, persistence error, or CAS retries exhausted
                (applied=True when only the read-back after a committed write failed)
            InsufficientInventory: strict consumption exceeds quantity on hand
        """
        delta = int(delta)
        if delta == 0:
            item = self.store.get_item(item_id)
            if item is None:
                raise InventoryUpdateFailed(item_id, delta, "item not found")
            return item

        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                item = self.store.get_item(item_id)
            except PersistenceFailed as e:
                raise InventoryUpdateFailed(item_id, delta, e.reason) from e
            if item is None:
                raise InventoryUpdateFailed(item_id, delta, "item not found")

            current = int(item.quantity or 0)
            if strict and delta < 0 and current + delta < 0:
                raise InsufficientInventory(item.gem_code, -delta, current, item_id=item.id)
            new_quantity = max(0, current + delta)
            if new_quantity == current:
                logger.warning("Quantity for %s already 0; delta %s not applied", item.gem_code, delta)
                return item

            movement = {
                "quantity_delta": new_quantity - current,
                "quantity_before": current,
                "quantity_after": new_quantity,
                "reason": reason,
                "reference_id": reference_id,
                "notes": notes,
            }
            try:
                swapped = self.store.update_quantity(item_id, current, new_quantity, movement)
            except PersistenceFailed as e:
                raise InventoryUpdateFailed(item_id, delta, e.reason) from e

            if swapped:
                if new_quantity != current + delta:
                    logger.warning(
                        "Quantity for %s clamped at 0 (had %s, delta %s)", item.gem_code, current, delta
                    )
                logger.info(
                    "Inventory %s: %s -> %s (%s%s)",
                    item.gem_code, current, new_quantity, reason,
                    f" ref {reference_id}" if reference_id else "",
                )
                try:
                    return self.store.get_item(item_id)
                except PersistenceFailed as e:
                    raise InventoryUpdateFailed(item_id, delta, e.reason, applied=True) from e

            logger.warning(
                "Concurrent quantity change on %s (expected %s); retry %s/%s",
                item_id, current, attempt, attempts,
            )

        raise InventoryUpdateFailed(item_id, delta, f"quantity kept changing; gave up after {attempts} attempts")
