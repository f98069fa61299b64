# pharmacy_ledger/database/repositories/purchases_repo.py
from __future__ import annotations
import sqlite3

from ...ledger.errors import NotFoundError
from ...ledger.gst import GstSplit
from ...ledger.purchases import PurchaseHeader, PurchaseLine, PurchaseTotals
from ...utils.helpers import blank_to_none


class PurchasesRepo:
    """
    Purchase headers and lines. Inserts/updates do not commit; the caller
    controls the transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------- Query ----------
    def list_purchases(self, limit: int = 50) -> list[dict]:
        sql = """
        SELECT p.id, p.invoice_number, p.invoice_date, p.supplier_id, s.name AS supplier_name,
               CAST(p.subtotal AS REAL)    AS subtotal,
               CAST(p.total_gst AS REAL)   AS total_gst,
               CAST(p.grand_total AS REAL) AS grand_total,
               p.payment_status, CAST(p.paid_amount AS REAL) AS paid_amount,
               p.due_date, p.notes
        FROM purchases p
        JOIN suppliers s ON s.id = p.supplier_id
        ORDER BY DATE(p.invoice_date) DESC, p.id DESC
        LIMIT ?
        """
        return [dict(r) for r in self.conn.execute(sql, (int(limit),)).fetchall()]

    def get(self, purchase_id: int) -> dict | None:
        r = self.conn.execute("SELECT * FROM purchases WHERE id=?", (int(purchase_id),)).fetchone()
        return dict(r) if r else None

    def list_items(self, purchase_id: int) -> list[dict]:
        sql = """
        SELECT pi.id, pi.purchase_id, pi.medicine_id, m.name AS medicine_name,
               pi.batch_id, b.batch_number, b.expiry_date,
               pi.quantity, pi.free_quantity,
               CAST(pi.purchase_price AS REAL) AS purchase_price,
               CAST(pi.mrp AS REAL)            AS mrp,
               CAST(pi.selling_price AS REAL)  AS selling_price,
               CAST(pi.gst_rate AS REAL)       AS gst_rate,
               CAST(pi.cgst AS REAL)           AS cgst,
               CAST(pi.sgst AS REAL)           AS sgst,
               CAST(pi.total_gst AS REAL)      AS total_gst,
               CAST(pi.total AS REAL)          AS total
        FROM purchase_items pi
        JOIN medicines m ON m.id = pi.medicine_id
        JOIN batches b   ON b.id = pi.batch_id
        WHERE pi.purchase_id=?
        ORDER BY pi.id
        """
        return [dict(r) for r in self.conn.execute(sql, (int(purchase_id),)).fetchall()]

    # ---------- Low-level writes ----------
    def insert_header(self, h: PurchaseHeader, totals: PurchaseTotals, user_id: int) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO purchases(
                invoice_number, invoice_date, supplier_id, user_id,
                subtotal, cgst_amount, sgst_amount, total_gst, grand_total,
                payment_status, paid_amount, due_date, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(h.invoice_number).strip(), h.invoice_date, int(h.supplier_id), int(user_id),
                totals.subtotal, totals.cgst, totals.sgst, totals.total_gst, totals.grand_total,
                h.payment_status, float(h.paid_amount or 0), blank_to_none(h.due_date), blank_to_none(h.notes),
            ),
        )
        return int(cur.lastrowid)

    def insert_item(self, purchase_id: int, line: PurchaseLine, batch_id: int, split: GstSplit) -> int:
        r = split.rounded()
        cur = self.conn.execute(
            """
            INSERT INTO purchase_items(
                purchase_id, medicine_id, batch_id, quantity, free_quantity,
                purchase_price, mrp, selling_price, gst_rate,
                cgst, sgst, total_gst, total
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(purchase_id), int(line.medicine_id), int(batch_id),
                int(line.quantity), int(line.free_quantity or 0),
                float(line.purchase_price), float(line.mrp), float(line.selling_price),
                r.gst_rate, r.cgst, r.sgst, r.total_gst, r.total,
            ),
        )
        return int(cur.lastrowid)

    def update_header(self, purchase_id: int, h: PurchaseHeader) -> None:
        """Header fields only; lines, totals and stock are left alone."""
        cur = self.conn.execute(
            """
            UPDATE purchases SET
                supplier_id=?, invoice_number=?, invoice_date=?,
                payment_status=?, paid_amount=?, due_date=?, notes=?,
                updated_at=CURRENT_TIMESTAMP
            WHERE id=?
            """,
            (
                int(h.supplier_id), str(h.invoice_number).strip(), h.invoice_date,
                h.payment_status, float(h.paid_amount or 0), blank_to_none(h.due_date),
                blank_to_none(h.notes), int(purchase_id),
            ),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Purchase {purchase_id} not found.")
