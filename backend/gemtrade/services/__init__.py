"""
Business logic services for GemTrade
"""
from .tax_service import compute_tax, compute_profit, TaxBreakdown
from .stone_resolver import StoneResolver, StoneResolution, MatchKind
from .inventory_ledger_service import InventoryLedgerService
from .sale_service import SaleTransactionService
from .sale_read_model import SaleReadModelBuilder
from .sales_query_service import SalesQueryService
from .document_service import DocumentService

__all__ = [
    "compute_tax",
    "compute_profit",
    "TaxBreakdown",
    "StoneResolver",
    "StoneResolution",
    "MatchKind",
    "InventoryLedgerService",
    "SaleTransactionService",
    "SaleReadModelBuilder",
    "SalesQueryService",
    "DocumentService",
]
