# pharmacy_ledger/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from pharmacy_ledger.database.repositories import (
        # Catalog
        SuppliersRepo, Supplier, MedicinesRepo, Medicine,
        # Stock
        BatchesRepo,
        # Purchases
        PurchasesRepo,
        # Returns
        SalesReturnsRepo, PurchaseReturnsRepo, next_document_number,
    )
"""

# ---------------- Catalog ------------------
from .medicines_repo import MedicinesRepo, Medicine
from .suppliers_repo import SuppliersRepo, Supplier

# ----------------- Stock -------------------
from .batches_repo import BatchesRepo

# ---------------- Purchases ----------------
from .purchases_repo import PurchasesRepo

# ---------------- Returns ------------------
from .document_numbers import next_document_number
from .purchase_returns_repo import PurchaseReturnsRepo
from .sales_returns_repo import SalesReturnsRepo

__all__ = [
    # medicines_repo
    "MedicinesRepo",
    "Medicine",
    # suppliers_repo
    "SuppliersRepo",
    "Supplier",
    # batches_repo
    "BatchesRepo",
    # purchases_repo
    "PurchasesRepo",
    # returns
    "next_document_number",
    "PurchaseReturnsRepo",
    "SalesReturnsRepo",
]
