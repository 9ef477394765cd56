"""
API routes for GemTrade
"""
from .clients import router as clients_router
from .inventory import router as inventory_router
from .sales import router as sales_router

__all__ = [
    "clients_router",
    "inventory_router",
    "sales_router",
]
