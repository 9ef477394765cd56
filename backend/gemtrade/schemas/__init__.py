"""
Pydantic schemas for request/response validation
"""
from .client import ClientCreate, ClientResponse
from .inventory import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemResponse,
    InventoryAdjustment, InventoryMovementResponse, StoneResolutionResponse,
)
from .sale import (
    SaleLineItemDraft, SaleCreate, SaleResponse, SaleLineItemResponse,
    SaleView, SaleViewItem, TaxBreakdownView, SalesSummary,
)

__all__ = [
    # Client
    "ClientCreate",
    "ClientResponse",
    # Inventory
    "InventoryItemCreate",
    "InventoryItemUpdate",
    "InventoryItemResponse",
    "InventoryAdjustment",
    "InventoryMovementResponse",
    "StoneResolutionResponse",
    # Sales
    "SaleLineItemDraft",
    "SaleCreate",
    "SaleResponse",
    "SaleLineItemResponse",
    "SaleView",
    "SaleViewItem",
    "TaxBreakdownView",
    "SalesSummary",
]
