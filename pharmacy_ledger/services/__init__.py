# pharmacy_ledger/services/__init__.py
"""
Multi-step ledger operations. Each public function here runs as one
transaction on the connection it is given.
"""
from ..utils.loggers import get_logger

from .purchases import PurchaseResult, add_opening_batch, save_purchase, update_purchase_header
from .returns import (
    ReturnResult,
    SalesReturnRequest,
    SupplierReturnRequest,
    process_sales_return,
    process_supplier_return,
    set_supplier_return_status,
)

get_logger()

__all__ = [
    "PurchaseResult",
    "add_opening_batch",
    "save_purchase",
    "update_purchase_header",
    "ReturnResult",
    "SalesReturnRequest",
    "SupplierReturnRequest",
    "process_sales_return",
    "process_supplier_return",
    "set_supplier_return_status",
]
