"""
GemTrade - gemstone trade back office: sales engine and inventory reconciliation
"""
__version__ = "0.1.0"
