# pharmacy_ledger/ledger/returns.py
"""
Return reversal arithmetic.

Sales return:    customer -> pharmacy, priced per piece from the strip price,
                 stock goes back UP by the returned pieces.
Supplier return: pharmacy -> supplier, priced at MRP * quantity,
                 stock goes DOWN by the returned pieces.

In both cases the amount is tax inclusive and the GST is extracted with
inclusive_split().
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import LineIssue, ReturnQuantityError, ValidationError
from .gst import GstSplit, inclusive_split, money
from .units import normalize_pack_size


@dataclass(frozen=True)
class SalesReturnSource:
    """A sold bill line as far as a return is concerned (quantities in pieces)."""
    bill_item_id: int
    batch_id: int
    medicine_name: str
    selling_price: Optional[float]   # per strip
    mrp: Optional[float]             # per strip
    pack_size: Optional[int]
    gst_rate: float
    sold_quantity: int
    returned_quantity: int = 0

    @property
    def returnable(self) -> int:
        return max(0, int(self.sold_quantity) - int(self.returned_quantity))

    @property
    def strip_price(self) -> float:
        if self.selling_price is not None:
            return float(self.selling_price)
        return float(self.mrp or 0)


@dataclass(frozen=True)
class SupplierReturnSource:
    batch_id: int
    medicine_id: int
    medicine_name: str
    mrp: float
    gst_rate: float
    on_hand: int


@dataclass(frozen=True)
class ReturnLine:
    source_id: int        # bill_item_id (sales) or batch_id (supplier)
    batch_id: int
    quantity: int         # pieces
    unit_price: float     # price the amount was computed from
    split: GstSplit
    stock_delta: int      # +returned for sales, -returned for supplier

    @property
    def amount(self) -> float:
        return self.split.total


@dataclass(frozen=True)
class ReturnTotals:
    total_amount: float
    total_gst: float


def clamp_return_quantity(requested, available) -> int:
    """Bound a requested quantity to [0, available]."""
    return max(0, min(int(requested or 0), int(available or 0)))


def _check_quantity(quantity, available: int, *, line_no: int | None, label: str, what: str) -> int:
    try:
        if isinstance(quantity, float) and not quantity.is_integer():
            raise ValueError(quantity)
        q = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError([LineIssue(line_no, label, "Return quantity must be a whole number.")]) from None
    if q <= 0:
        raise ValidationError([LineIssue(line_no, label, "Return quantity must be a whole number above zero.")])
    if q > available:
        raise ReturnQuantityError(
            [LineIssue(line_no, label, f"Return quantity {q} exceeds {what} ({available}).")]
        )
    return q


def sales_return_line(source: SalesReturnSource, quantity, *, line_no: int | None = None) -> ReturnLine:
    q = _check_quantity(quantity, source.returnable, line_no=line_no,
                        label=source.medicine_name, what="quantity still returnable")
    price_per_piece = source.strip_price / normalize_pack_size(source.pack_size)
    amount = price_per_piece * q
    return ReturnLine(
        source_id=int(source.bill_item_id),
        batch_id=int(source.batch_id),
        quantity=q,
        unit_price=price_per_piece,
        split=inclusive_split(amount, source.gst_rate or 0),
        stock_delta=q,
    )


def supplier_return_line(source: SupplierReturnSource, quantity, *, line_no: int | None = None) -> ReturnLine:
    q = _check_quantity(quantity, int(source.on_hand), line_no=line_no,
                        label=source.medicine_name, what="stock on hand")
    unit_price = float(source.mrp or 0)
    return ReturnLine(
        source_id=int(source.batch_id),
        batch_id=int(source.batch_id),
        quantity=q,
        unit_price=unit_price,
        split=inclusive_split(unit_price * q, source.gst_rate or 0),
        stock_delta=-q,
    )


def summarize_returns(lines: Iterable[ReturnLine]) -> ReturnTotals:
    amount = gst = 0.0
    for ln in lines:
        r = ln.split.rounded()
        amount += r.total
        gst += r.total_gst
    return ReturnTotals(money(amount), money(gst))
