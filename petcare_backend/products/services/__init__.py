from .stock_ledger import StockAdjustment, StockDirection, StockLedger, stock_ledger

__all__ = [
    "StockAdjustment",
    "StockDirection",
    "StockLedger",
    "stock_ledger",
]
