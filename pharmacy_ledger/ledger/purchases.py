# pharmacy_ledger/ledger/purchases.py
"""
Purchase entry: input lines, per-line tax and invoice totals.

Quantities on a purchase line are in strips. Cost is quantity * purchase_price;
free strips are stock only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants import DEFAULT_GST_RATE, GST_RATES, PAYMENT_STATUSES
from ..utils.helpers import iso_date
from ..utils.validators import (
    is_iso_date,
    is_non_negative_number,
    is_strictly_positive_number,
    is_whole_number,
    non_empty,
)
from .errors import LineIssue, ValidationError
from .gst import GstSplit, exclusive_split, money


@dataclass
class PurchaseLine:
    medicine_id: int
    batch_number: str
    expiry_date: str
    quantity: int                 # strips billed
    purchase_price: float         # per strip, tax exclusive
    mrp: float                    # per strip
    selling_price: float          # per strip
    free_quantity: int = 0        # strips received free of cost
    gst_rate: Optional[float] = None
    pack_size: Optional[int] = None
    rack: Optional[str] = None
    box: Optional[str] = None
    medicine_name: str = ""

    def __post_init__(self):
        self.expiry_date = iso_date(self.expiry_date)

    @property
    def label(self) -> str:
        return self.medicine_name or f"medicine #{self.medicine_id}"

    @property
    def effective_gst_rate(self) -> float:
        return float(self.gst_rate) if self.gst_rate is not None else DEFAULT_GST_RATE


@dataclass
class PurchaseHeader:
    supplier_id: int
    invoice_number: str
    invoice_date: str
    payment_status: str = "PENDING"
    paid_amount: float = 0.0
    due_date: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        # stored as text; sqlite3 no longer adapts date objects by default
        self.invoice_date = iso_date(self.invoice_date)
        self.due_date = iso_date(self.due_date)


@dataclass(frozen=True)
class PurchaseTotals:
    subtotal: float
    cgst: float
    sgst: float
    total_gst: float
    grand_total: float


def line_amounts(line: PurchaseLine) -> GstSplit:
    """Exclusive-of-tax split of quantity * purchase_price (free strips excluded)."""
    subtotal = float(line.quantity) * float(line.purchase_price)
    return exclusive_split(subtotal, line.effective_gst_rate)


def purchase_totals(splits: Iterable[GstSplit]) -> PurchaseTotals:
    """Sum rounded line splits into invoice totals."""
    subtotal = cgst = sgst = total_gst = grand = 0.0
    for s in splits:
        r = s.rounded()
        subtotal += r.net_amount
        cgst += r.cgst
        sgst += r.sgst
        total_gst += r.total_gst
        grand += r.total
    return PurchaseTotals(money(subtotal), money(cgst), money(sgst), money(total_gst), money(grand))


# ---- validation ---------------------------------------------------------

def header_issues(header: PurchaseHeader) -> list[LineIssue]:
    issues: list[LineIssue] = []
    if not header.supplier_id:
        issues.append(LineIssue(None, "supplier", "Please select a supplier."))
    if not non_empty(header.invoice_number):
        issues.append(LineIssue(None, "invoice number", "Please enter invoice number."))
    if not is_iso_date(header.invoice_date):
        issues.append(LineIssue(None, "invoice date", "Invoice date must be YYYY-MM-DD."))
    if header.payment_status not in PAYMENT_STATUSES:
        issues.append(LineIssue(None, "payment status", f"Unknown payment status {header.payment_status!r}."))
    if not is_non_negative_number(header.paid_amount or 0):
        issues.append(LineIssue(None, "paid amount", "Paid amount cannot be negative."))
    if header.due_date and not is_iso_date(header.due_date):
        issues.append(LineIssue(None, "due date", "Due date must be YYYY-MM-DD."))
    return issues


def line_issues(line: PurchaseLine, line_no: int) -> list[LineIssue]:
    out: list[LineIssue] = []

    def bad(msg: str) -> None:
        out.append(LineIssue(line_no, line.label, msg))

    if not line.medicine_id:
        bad("Please select a medicine.")
    if not non_empty(line.batch_number):
        bad("Please enter batch number.")
    if not is_iso_date(line.expiry_date):
        bad("Please enter expiry date (YYYY-MM-DD).")
    if not (is_strictly_positive_number(line.quantity) and is_whole_number(line.quantity)):
        bad("Please enter valid quantity.")
    if not (is_non_negative_number(line.free_quantity or 0) and is_whole_number(line.free_quantity or 0)):
        bad("Free quantity must be a whole number >= 0.")
    if not is_strictly_positive_number(line.purchase_price):
        bad("Please enter purchase price.")
    if not is_strictly_positive_number(line.mrp):
        bad("Please enter MRP.")
    if not is_strictly_positive_number(line.selling_price):
        bad("Please enter selling price.")
    if line.gst_rate is not None and float(line.gst_rate) not in GST_RATES:
        bad(f"GST rate must be one of {', '.join(str(r) for r in GST_RATES)}.")
    return out


def validate_purchase(header: PurchaseHeader, lines: list[PurchaseLine]) -> None:
    """Raise ValidationError listing every offending field/line; no-op when clean."""
    issues = header_issues(header)
    if not lines:
        issues.append(LineIssue(None, "items", "Please add at least one item."))
    for i, ln in enumerate(lines, start=1):
        issues.extend(line_issues(ln, i))
    if issues:
        raise ValidationError(issues)
