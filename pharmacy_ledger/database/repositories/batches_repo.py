# pharmacy_ledger/database/repositories/batches_repo.py
"""
Repository for batch stock (quantities in pieces).

Writes here never commit; the caller wraps them in database.transaction().
Quantity changes are relative (quantity = quantity +/- ?) so a stale snapshot
cannot overwrite a concurrent change, and removals are guarded so stock never
goes below zero.
"""
from __future__ import annotations

import sqlite3
from typing import Optional

from ...ledger.batches import BatchAction, BatchSnapshot, CreateBatch, IncrementBatch
from ...ledger.errors import NotFoundError, LineIssue, ReturnQuantityError
from ...ledger.returns import SupplierReturnSource


class BatchesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, batch_id: int) -> dict | None:
        r = self.conn.execute(
            """
            SELECT id, medicine_id, batch_number, expiry_date,
                   CAST(purchase_price AS REAL) AS purchase_price,
                   CAST(mrp AS REAL)            AS mrp,
                   CAST(selling_price AS REAL)  AS selling_price,
                   quantity, tablets_per_strip,
                   CAST(gst_rate AS REAL)       AS gst_rate,
                   rack, box, purchase_id, supplier_id, is_active
            FROM batches WHERE id=?
            """,
            (int(batch_id),),
        ).fetchone()
        return dict(r) if r else None

    def find_by_code(self, medicine_id: int, batch_number: str) -> Optional[BatchSnapshot]:
        """Exact match on (medicine_id, batch_number)."""
        r = self.conn.execute(
            "SELECT id, medicine_id, batch_number, quantity FROM batches "
            "WHERE medicine_id=? AND batch_number=?",
            (int(medicine_id), str(batch_number).strip()),
        ).fetchone()
        if not r:
            return None
        return BatchSnapshot(int(r["id"]), int(r["medicine_id"]), r["batch_number"], int(r["quantity"]))

    def supplier_return_source(self, batch_id: int, supplier_id: int) -> Optional[SupplierReturnSource]:
        """
        The batch as seen by a supplier return, or None when the batch is inactive
        or not linked to this supplier (directly or via its purchase).
        """
        r = self.conn.execute(
            """
            SELECT b.id AS batch_id, b.medicine_id, m.name AS medicine_name,
                   CAST(b.mrp AS REAL) AS mrp,
                   CAST(COALESCE(b.gst_rate, 12) AS REAL) AS gst_rate,
                   b.quantity AS on_hand
            FROM batches b
            JOIN medicines m ON m.id = b.medicine_id
            LEFT JOIN purchases p ON p.id = b.purchase_id
            WHERE b.id = ? AND b.is_active = 1
              AND (b.supplier_id = ? OR p.supplier_id = ?)
            """,
            (int(batch_id), int(supplier_id), int(supplier_id)),
        ).fetchone()
        return SupplierReturnSource(**dict(r)) if r else None

    # ------------------------------------------------------------------
    # Upsert from a purchase line
    # ------------------------------------------------------------------
    def apply(self, action: BatchAction) -> int:
        """Persist a resolver action; returns the batch id."""
        if isinstance(action, IncrementBatch):
            cur = self.conn.execute(
                """
                UPDATE batches SET
                    quantity          = quantity + ?,
                    purchase_price    = ?,
                    mrp               = ?,
                    selling_price     = ?,
                    tablets_per_strip = ?,
                    expiry_date       = ?,
                    rack              = COALESCE(?, rack),
                    box               = COALESCE(?, box),
                    purchase_id       = COALESCE(?, purchase_id),
                    supplier_id       = COALESCE(?, supplier_id),
                    is_active         = 1,
                    updated_at        = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    action.add_pieces, action.purchase_price, action.mrp, action.selling_price,
                    action.pack_size, action.expiry_date, action.rack, action.box,
                    action.purchase_id, action.supplier_id, action.batch_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Batch {action.batch_id} disappeared before it could be updated.")
            return action.batch_id

        if isinstance(action, CreateBatch):
            b = action.batch
            # ON CONFLICT turns a create that lost a race into the increment it should have been
            self.conn.execute(
                """
                INSERT INTO batches (
                    medicine_id, batch_number, expiry_date,
                    purchase_price, mrp, selling_price, price_type,
                    quantity, tablets_per_strip, gst_rate, rack, box,
                    purchase_id, supplier_id
                ) VALUES (?, ?, ?, ?, ?, ?, 'INCLUSIVE', ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(medicine_id, batch_number) DO UPDATE SET
                    quantity          = batches.quantity + excluded.quantity,
                    purchase_price    = excluded.purchase_price,
                    mrp               = excluded.mrp,
                    selling_price     = excluded.selling_price,
                    tablets_per_strip = excluded.tablets_per_strip,
                    expiry_date       = excluded.expiry_date,
                    rack              = COALESCE(excluded.rack, batches.rack),
                    box               = COALESCE(excluded.box, batches.box),
                    purchase_id       = COALESCE(excluded.purchase_id, batches.purchase_id),
                    supplier_id       = COALESCE(excluded.supplier_id, batches.supplier_id),
                    is_active         = 1,
                    updated_at        = CURRENT_TIMESTAMP
                """,
                (
                    b.medicine_id, b.batch_number, b.expiry_date,
                    b.purchase_price, b.mrp, b.selling_price,
                    b.quantity, b.pack_size, b.gst_rate, b.rack, b.box,
                    b.purchase_id, b.supplier_id,
                ),
            )
            snap = self.find_by_code(b.medicine_id, b.batch_number)
            if snap is None:
                raise NotFoundError(f"Batch {b.batch_number} missing after insert.")
            return snap.batch_id

        raise TypeError(f"Unknown batch action: {action!r}")

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------
    def add_stock(self, batch_id: int, pieces: int) -> None:
        cur = self.conn.execute(
            "UPDATE batches SET quantity = quantity + ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (int(pieces), int(batch_id)),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Batch {batch_id} not found.")

    def remove_stock(self, batch_id: int, pieces: int, *, line_no: int | None = None) -> None:
        cur = self.conn.execute(
            """
            UPDATE batches SET quantity = quantity - ?, updated_at = CURRENT_TIMESTAMP
             WHERE id = ? AND quantity >= ?
            """,
            (int(pieces), int(batch_id), int(pieces)),
        )
        if cur.rowcount:
            return
        row = self.conn.execute("SELECT quantity FROM batches WHERE id=?", (int(batch_id),)).fetchone()
        if row is None:
            raise NotFoundError(f"Batch {batch_id} not found.")
        raise ReturnQuantityError(
            [LineIssue(line_no, f"batch #{batch_id}", f"Only {row['quantity']} in stock, cannot remove {pieces}.")]
        )
