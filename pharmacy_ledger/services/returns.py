# pharmacy_ledger/services/returns.py
"""
Sales returns (customer -> pharmacy) and supplier returns (pharmacy -> supplier).

Each submission is one transaction: return header, return items, the stock
movement of every line and the return-number draw commit together.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
import logging
import sqlite3
from typing import Iterable, Optional

from ..constants import (
    DEFAULT_USER_ID,
    REFUND_MODES,
    SALES_RETURN_PREFIX,
    SUPPLIER_RETURN_PREFIX,
    SUPPLIER_RETURN_REASONS,
)
from ..database import transaction
from ..database.repositories.batches_repo import BatchesRepo
from ..database.repositories.document_numbers import next_document_number
from ..database.repositories.purchase_returns_repo import PurchaseReturnsRepo
from ..database.repositories.sales_returns_repo import SalesReturnsRepo
from ..database.repositories.suppliers_repo import SuppliersRepo
from ..ledger.errors import (
    DomainError,
    LineIssue,
    NotFoundError,
    PersistenceError,
    ReturnQuantityError,
    ValidationError,
)
from ..ledger.returns import (
    ReturnLine,
    ReturnTotals,
    sales_return_line,
    summarize_returns,
    supplier_return_line,
)
from ..utils.loggers import log_event

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalesReturnRequest:
    bill_item_id: int
    quantity: int          # pieces


@dataclass(frozen=True)
class SupplierReturnRequest:
    batch_id: int
    quantity: int          # pieces


@dataclass(frozen=True)
class ReturnResult:
    return_id: int
    return_number: str
    totals: ReturnTotals
    lines: tuple[ReturnLine, ...]
    bill_returned: bool = False     # sales returns: bill now fully returned


def _raise_collected(issues: list[LineIssue], over_quantity: bool) -> None:
    if not issues:
        return
    if over_quantity:
        raise ReturnQuantityError(issues)
    raise ValidationError(issues)


def _build_sales_lines(repo: SalesReturnsRepo, bill: dict, requests: list[SalesReturnRequest]) -> list[ReturnLine]:
    sources = {s.bill_item_id: s for s in repo.returnable_lines(bill["id"])}
    issues: list[LineIssue] = []
    over = False
    lines: list[ReturnLine] = []
    for line_no, req in enumerate(requests, start=1):
        src = sources.get(int(req.bill_item_id))
        if src is None:
            raise NotFoundError(f"Item {req.bill_item_id} is not on bill {bill['bill_number']}.")
        try:
            ln = sales_return_line(src, req.quantity, line_no=line_no)
        except ReturnQuantityError as e:
            issues.extend(e.issues)
            over = True
            continue
        except ValidationError as e:
            issues.extend(e.issues)
            continue
        # the same bill line twice in one submission draws on one returnable pool
        sources[src.bill_item_id] = replace(src, returned_quantity=src.returned_quantity + ln.quantity)
        lines.append(ln)
    _raise_collected(issues, over)
    return lines


def process_sales_return(
    conn: sqlite3.Connection,
    bill_id: int,
    requests: Iterable[SalesReturnRequest],
    *,
    reason: Optional[str] = None,
    refund_mode: str = "CASH",
    notes: Optional[str] = None,
    user_id: int = DEFAULT_USER_ID,
    on_date: Optional[date] = None,
) -> ReturnResult:
    """
    Return sold pieces from a bill: amounts from the batch strip price
    (tax inclusive), stock goes back up on the sold batch.
    """
    requests = [r for r in requests if r.quantity]
    refund_mode = (refund_mode or "").strip().upper()
    if refund_mode not in REFUND_MODES:
        raise ValidationError(f"Unknown refund mode {refund_mode!r}.")
    if not requests:
        raise ValidationError("Please select at least one item to return.")

    repo = SalesReturnsRepo(conn)
    batches = BatchesRepo(conn)
    try:
        with transaction(conn):
            bill = repo.get_bill(bill_id)
            if bill is None or bill["status"] == "CANCELLED":
                raise NotFoundError(f"Bill {bill_id} not found.")
            lines = _build_sales_lines(repo, bill, requests)
            totals = summarize_returns(lines)

            step = "save sales return"
            line_no = None
            try:
                number = next_document_number(conn, SALES_RETURN_PREFIX, on_date)
                return_id = repo.insert_header(number, bill, totals, user_id=user_id, reason=reason,
                                               refund_mode=refund_mode, notes=notes)
                for line_no, ln in enumerate(lines, start=1):
                    step = "save return item"
                    repo.insert_item(return_id, ln)
                    step = "restock batch"
                    batches.add_stock(ln.batch_id, ln.stock_delta)
                step, line_no = "update bill status", None
                bill_returned = repo.mark_returned_if_complete(bill["id"])
            except sqlite3.Error as e:
                raise PersistenceError(step, e, line_no=line_no) from e
    except DomainError as e:
        level = logging.WARNING if isinstance(e, ValidationError) else logging.ERROR
        log_event(_log, "sales_return", "rollback", str(e), {"bill_id": bill_id}, level=level)
        raise

    log_event(_log, "sales_return", "commit", "sales return saved",
              {"return_number": number, "bill_id": bill_id, "lines": len(lines),
               "total_amount": totals.total_amount, "bill_returned": bill_returned})
    return ReturnResult(return_id, number, totals, tuple(lines), bill_returned)


def process_supplier_return(
    conn: sqlite3.Connection,
    supplier_id: int,
    requests: Iterable[SupplierReturnRequest],
    *,
    reason: str = "EXPIRY",
    notes: Optional[str] = None,
    purchase_id: Optional[int] = None,
    user_id: int = DEFAULT_USER_ID,
    on_date: Optional[date] = None,
) -> ReturnResult:
    """
    Send stock back to a supplier: amount = MRP x quantity (tax inclusive),
    stock comes off the batch. The return starts PENDING.
    """
    requests = [r for r in requests if r.quantity]
    reason = (reason or "").strip().upper()
    if reason not in SUPPLIER_RETURN_REASONS:
        raise ValidationError(f"Unknown return reason {reason!r}.")
    if not requests:
        raise ValidationError("Please select at least one batch to return.")

    repo = PurchaseReturnsRepo(conn)
    batches = BatchesRepo(conn)
    try:
        with transaction(conn):
            if SuppliersRepo(conn).get(supplier_id) is None:
                raise NotFoundError(f"Supplier {supplier_id} not found.")

            issues: list[LineIssue] = []
            over = False
            lines: list[tuple[int, ReturnLine]] = []
            taken: dict[int, int] = {}
            for line_no, req in enumerate(requests, start=1):
                src = batches.supplier_return_source(req.batch_id, supplier_id)
                if src is None:
                    raise NotFoundError(f"Batch {req.batch_id} is not stocked from supplier {supplier_id}.")
                src = replace(src, on_hand=src.on_hand - taken.get(src.batch_id, 0))
                try:
                    ln = supplier_return_line(src, req.quantity, line_no=line_no)
                except ReturnQuantityError as e:
                    issues.extend(e.issues)
                    over = True
                    continue
                except ValidationError as e:
                    issues.extend(e.issues)
                    continue
                taken[src.batch_id] = taken.get(src.batch_id, 0) + ln.quantity
                lines.append((src.medicine_id, ln))
            _raise_collected(issues, over)
            totals = summarize_returns(ln for _, ln in lines)

            step = "save supplier return"
            line_no = None
            try:
                number = next_document_number(conn, SUPPLIER_RETURN_PREFIX, on_date)
                return_id = repo.insert_header(number, supplier_id, totals, user_id=user_id, reason=reason,
                                               purchase_id=purchase_id, notes=notes)
                for line_no, (medicine_id, ln) in enumerate(lines, start=1):
                    step = "save return item"
                    repo.insert_item(return_id, medicine_id, ln)
                    step = "remove stock"
                    batches.remove_stock(ln.batch_id, -ln.stock_delta, line_no=line_no)
            except sqlite3.Error as e:
                raise PersistenceError(step, e, line_no=line_no) from e
    except DomainError as e:
        level = logging.WARNING if isinstance(e, ValidationError) else logging.ERROR
        log_event(_log, "supplier_return", "rollback", str(e), {"supplier_id": supplier_id}, level=level)
        raise

    log_event(_log, "supplier_return", "commit", "supplier return saved",
              {"return_number": number, "supplier_id": supplier_id, "lines": len(lines),
               "total_amount": totals.total_amount})
    return ReturnResult(return_id, number, totals, tuple(ln for _, ln in lines))


def set_supplier_return_status(conn: sqlite3.Connection, return_id: int, status: str) -> None:
    """Move a supplier return through PENDING / APPROVED / COMPLETED / REJECTED."""
    try:
        with transaction(conn):
            PurchaseReturnsRepo(conn).set_status(return_id, status)
    except sqlite3.Error as e:
        raise PersistenceError("update return status", e) from e
    _log.info("supplier return %s set to %s", return_id, status)
