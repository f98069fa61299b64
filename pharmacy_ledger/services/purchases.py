# pharmacy_ledger/services/purchases.py
"""
Purchase entry against the stock ledger.

save_purchase() is all-or-nothing: the header, every purchase item and every
batch increment/create commit together, or none of them do.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import sqlite3
from typing import Iterable

from ..constants import DEFAULT_USER_ID
from ..database import transaction
from ..database.repositories.batches_repo import BatchesRepo
from ..database.repositories.medicines_repo import MedicinesRepo
from ..database.repositories.purchases_repo import PurchasesRepo
from ..ledger.batches import resolve_batch_upsert
from ..ledger.errors import DomainError, LineIssue, PersistenceError, ValidationError
from ..ledger.purchases import (
    PurchaseHeader,
    PurchaseLine,
    PurchaseTotals,
    header_issues,
    line_amounts,
    line_issues,
    purchase_totals,
    validate_purchase,
)
from ..utils.loggers import log_event

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    purchase_id: int
    totals: PurchaseTotals
    batch_ids: tuple[int, ...]    # one per input line, in order


def _with_catalog_defaults(conn: sqlite3.Connection, lines: Iterable[PurchaseLine]) -> list[PurchaseLine]:
    """Fill missing GST rate / pack size / name from the medicine record."""
    repo = MedicinesRepo(conn)
    out: list[PurchaseLine] = []
    for ln in lines:
        med = repo.get(ln.medicine_id) if ln.medicine_id else None
        if med is not None:
            ln = replace(
                ln,
                gst_rate=ln.gst_rate if ln.gst_rate is not None else med.gst_rate,
                pack_size=ln.pack_size if ln.pack_size else med.tablets_per_strip,
                medicine_name=ln.medicine_name or med.name,
            )
        out.append(ln)
    return out


def _apply_line(
    batches: BatchesRepo,
    line: PurchaseLine,
    line_no: int,
    *,
    purchase_id: int | None,
    supplier_id: int | None,
) -> int:
    step = "look up batch"
    try:
        existing = batches.find_by_code(line.medicine_id, line.batch_number)
        action = resolve_batch_upsert(existing, line, purchase_id=purchase_id, supplier_id=supplier_id)
        step = "update batch" if action.kind == "increment" else "create batch"
        return batches.apply(action)
    except sqlite3.Error as e:
        raise PersistenceError(step, e, line_no=line_no, label=line.label) from e


def save_purchase(
    conn: sqlite3.Connection,
    header: PurchaseHeader,
    lines: Iterable[PurchaseLine],
    user_id: int = DEFAULT_USER_ID,
) -> PurchaseResult:
    """
    Validate, then in one transaction: insert the header with invoice totals,
    and per line resolve the batch (increment or create) and insert the item.

    Raises ValidationError (nothing written) or PersistenceError (rolled back).
    """
    lines = _with_catalog_defaults(conn, lines)
    try:
        validate_purchase(header, lines)
    except ValidationError as e:
        log_event(_log, "purchase", "validate", "purchase rejected",
                  {"invoice": header.invoice_number, "lines": e.line_numbers}, level=logging.WARNING)
        raise

    splits = [line_amounts(ln) for ln in lines]
    totals = purchase_totals(splits)
    purchases = PurchasesRepo(conn)
    batches = BatchesRepo(conn)
    batch_ids: list[int] = []

    try:
        with transaction(conn):
            try:
                purchase_id = purchases.insert_header(header, totals, user_id)
            except sqlite3.Error as e:
                raise PersistenceError("save purchase header", e) from e

            for line_no, (ln, split) in enumerate(zip(lines, splits), start=1):
                batch_id = _apply_line(batches, ln, line_no,
                                       purchase_id=purchase_id, supplier_id=int(header.supplier_id))
                try:
                    purchases.insert_item(purchase_id, ln, batch_id, split)
                except sqlite3.Error as e:
                    raise PersistenceError("save purchase item", e, line_no=line_no, label=ln.label) from e
                batch_ids.append(batch_id)
    except DomainError as e:
        log_event(_log, "purchase", "rollback", str(e),
                  {"invoice": header.invoice_number, "line": getattr(e, "line_no", None)}, level=logging.ERROR)
        raise

    log_event(_log, "purchase", "commit", "purchase saved",
              {"purchase_id": purchase_id, "invoice": header.invoice_number,
               "lines": len(lines), "grand_total": totals.grand_total})
    return PurchaseResult(purchase_id, totals, tuple(batch_ids))


def add_opening_batch(conn: sqlite3.Connection, supplier_id: int, line: PurchaseLine) -> int:
    """
    Stock received from a supplier without a purchase invoice (opening stock).
    Goes through the same merge-or-create path as a purchase line.
    """
    (line,) = _with_catalog_defaults(conn, [line])
    issues = line_issues(line, 1)
    if not supplier_id:
        issues.insert(0, LineIssue(None, "supplier", "Please select a supplier."))
    if issues:
        raise ValidationError(issues)

    batches = BatchesRepo(conn)
    with transaction(conn):
        batch_id = _apply_line(batches, line, 1, purchase_id=None, supplier_id=int(supplier_id))
    _log.info("opening stock added to batch %s (%s)", batch_id, line.label)
    return batch_id


def update_purchase_header(conn: sqlite3.Connection, purchase_id: int, header: PurchaseHeader) -> None:
    """Edit invoice/supplier/payment fields. Lines, totals and stock are not touched."""
    issues = header_issues(header)
    if issues:
        raise ValidationError(issues)
    try:
        with transaction(conn):
            PurchasesRepo(conn).update_header(purchase_id, header)
    except sqlite3.Error as e:
        raise PersistenceError("update purchase", e) from e
    _log.info("purchase %s header updated", purchase_id)
