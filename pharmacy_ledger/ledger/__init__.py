# pharmacy_ledger/ledger/__init__.py
"""
Pure arithmetic core of the batch & return ledger. Nothing here touches the database.
"""
from .errors import (
    DomainError,
    LineIssue,
    NotFoundError,
    PersistenceError,
    ReturnQuantityError,
    ValidationError,
)
from .units import normalize_pack_size, pieces_from_strips, strips_from_pieces
from .gst import GST_RATES, GstSplit, exclusive_split, inclusive_split, money
from .purchases import (
    PurchaseHeader,
    PurchaseLine,
    PurchaseTotals,
    header_issues,
    line_amounts,
    line_issues,
    purchase_totals,
    validate_purchase,
)
from .batches import (
    BatchAction,
    BatchSnapshot,
    CreateBatch,
    IncrementBatch,
    NewBatch,
    resolve_batch_upsert,
)
from .returns import (
    ReturnLine,
    ReturnTotals,
    SalesReturnSource,
    SupplierReturnSource,
    clamp_return_quantity,
    sales_return_line,
    summarize_returns,
    supplier_return_line,
)

__all__ = [
    # errors
    "DomainError",
    "LineIssue",
    "NotFoundError",
    "PersistenceError",
    "ReturnQuantityError",
    "ValidationError",
    # units
    "normalize_pack_size",
    "pieces_from_strips",
    "strips_from_pieces",
    # gst
    "GST_RATES",
    "GstSplit",
    "exclusive_split",
    "inclusive_split",
    "money",
    # purchases
    "PurchaseHeader",
    "PurchaseLine",
    "PurchaseTotals",
    "header_issues",
    "line_amounts",
    "line_issues",
    "purchase_totals",
    "validate_purchase",
    # batches
    "BatchAction",
    "BatchSnapshot",
    "CreateBatch",
    "IncrementBatch",
    "NewBatch",
    "resolve_batch_upsert",
    # returns
    "ReturnLine",
    "ReturnTotals",
    "SalesReturnSource",
    "SupplierReturnSource",
    "clamp_return_quantity",
    "sales_return_line",
    "summarize_returns",
    "supplier_return_line",
]
