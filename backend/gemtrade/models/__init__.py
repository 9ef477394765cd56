"""
Database models for GemTrade
"""
from gemtrade.database import Base

# Import all models
from .client import Client
from .inventory import InventoryItem, InventoryMovement
from .sale import Sale, SaleLineItem
from .settings import DocumentSequence

__all__ = [
    "Base",
    "Client",
    "InventoryItem",
    "InventoryMovement",
    "Sale",
    "SaleLineItem",
    "DocumentSequence",
]
