"""
Sale transaction errors

Validation errors (StoneNotFound, InsufficientInventory) are raised before
any write. Write-phase errors (InventoryUpdateFailed, PersistenceFailed)
are raised after compensation has run. CompensationFailed means the ledger
is inconsistent and needs manual reconciliation.
"""
from typing import Any, Dict, List, Optional
from uuid import UUID


class SaleTransactionError(Exception):
    """Base class. `kind` is the stable name the API returns to the UI."""
    kind = "SaleTransactionError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class SaleNotFound(SaleTransactionError):
    kind = "SaleNotFound"

    def __init__(self, sale_id):
        super().__init__(f"Sale {sale_id} not found")
        self.sale_id = sale_id

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["sale_id"] = str(self.sale_id)
        return detail


class StoneNotFound(SaleTransactionError):
    """One or more line items reference a stone that could not be resolved."""
    kind = "StoneNotFound"

    def __init__(self, reference: str, line_index: Optional[int] = None, unresolved: Optional[List[Dict[str, Any]]] = None):
        super().__init__(f"Stone '{reference}' not found")
        self.reference = reference
        self.line_index = line_index
        # Every unresolved line, so the UI can highlight all of them at once
        self.unresolved = unresolved or [{"reference": reference, "line_index": line_index}]

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({
            "reference": self.reference,
            "line_index": self.line_index,
            "unresolved": self.unresolved,
        })
        return detail


class InsufficientInventory(SaleTransactionError):
    kind = "InsufficientInventory"

    def __init__(self, reference: str, requested: int, available: int, item_id: Optional[UUID] = None, line_index: Optional[int] = None):
        super().__init__(
            f"Insufficient stock for {reference}. Available: {available}, Requested: {requested}"
        )
        self.reference = reference
        self.requested = requested
        self.available = available
        self.item_id = item_id
        self.line_index = line_index

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({
            "reference": self.reference,
            "requested": self.requested,
            "available": self.available,
            "item_id": str(self.item_id) if self.item_id else None,
            "line_index": self.line_index,
        })
        return detail


class InventoryUpdateFailed(SaleTransactionError):
    kind = "InventoryUpdateFailed"

    def __init__(self, item_id, delta: int, reason: str, applied: bool = False):
        super().__init__(f"Inventory update failed for {item_id} (delta {delta}): {reason}")
        self.item_id = item_id
        self.delta = delta
        self.reason = reason
        # True when the quantity write committed and only the read-back failed
        self.applied = applied

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({"item_id": str(self.item_id), "delta": self.delta, "applied": self.applied})
        return detail


class PersistenceFailed(SaleTransactionError):
    kind = "PersistenceFailed"

    def __init__(self, operation: str, reason: str):
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation
        self.reason = reason

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["operation"] = self.operation
        return detail


class SaleCreationFailed(PersistenceFailed):
    """Create failed during the write phase; applied effects were compensated."""
    kind = "SaleCreationFailed"

    def __init__(self, reason: str, applied_deltas: Optional[List[Dict[str, Any]]] = None):
        super().__init__("Sale creation", reason)
        self.applied_deltas = applied_deltas or []

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["applied_deltas"] = self.applied_deltas
        return detail


class CompensationFailed(SaleTransactionError):
    """A reversal step failed. Ledger is inconsistent until an operator reconciles it."""
    kind = "CompensationFailed"

    def __init__(self, operation: str, original_error: Exception, failed_steps: List[str], completed_steps: List[str]):
        super().__init__(
            f"{operation} failed ({original_error}) and compensation did not complete: "
            f"{'; '.join(failed_steps)}"
        )
        self.operation = operation
        self.original_error = original_error
        self.failed_steps = failed_steps
        self.completed_steps = completed_steps

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({
            "operation": self.operation,
            "original_error": getattr(self.original_error, "kind", type(self.original_error).__name__),
            "failed_steps": self.failed_steps,
            "completed_steps": self.completed_steps,
            "requires_manual_reconciliation": True,
        })
        return detail
