# pharmacy_ledger/database/repositories/sales_returns_repo.py
from __future__ import annotations

import sqlite3

from ...ledger.returns import ReturnLine, ReturnTotals, SalesReturnSource
from ...utils.helpers import blank_to_none


class SalesReturnsRepo:
    """
    Customer returns against a sales bill. Writes do not commit; the caller
    controls the transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------- Bills ----------
    def find_bill(self, term: str) -> dict | None:
        """Latest non-cancelled bill whose number contains `term`."""
        r = self.conn.execute(
            """
            SELECT id, bill_number, bill_date, customer_id, customer_name,
                   CAST(grand_total AS REAL) AS grand_total, status
            FROM bills
            WHERE bill_number LIKE ? AND status != 'CANCELLED'
            ORDER BY bill_date DESC, id DESC
            LIMIT 1
            """,
            (f"%{(term or '').strip()}%",),
        ).fetchone()
        return dict(r) if r else None

    def get_bill(self, bill_id: int) -> dict | None:
        r = self.conn.execute(
            "SELECT id, bill_number, bill_date, customer_id, customer_name, status "
            "FROM bills WHERE id=?",
            (int(bill_id),),
        ).fetchone()
        return dict(r) if r else None

    def returnable_lines(self, bill_id: int) -> list[SalesReturnSource]:
        """
        Each bill line with the prices it was sold at and the quantity already
        returned against it (pieces). Lines billed before prices were recorded
        on the bill fall back to the batch.
        """
        sql = """
        SELECT
          bi.id        AS bill_item_id,
          bi.batch_id,
          bi.medicine_name,
          CAST(COALESCE(bi.selling_price, b.selling_price) AS REAL) AS selling_price,
          CAST(COALESCE(bi.mrp, b.mrp) AS REAL)                     AS mrp,
          COALESCE(bi.tablets_per_strip, b.tablets_per_strip)       AS pack_size,
          CAST(COALESCE(bi.gst_rate, b.gst_rate, 0) AS REAL) AS gst_rate,
          bi.quantity  AS sold_quantity,
          COALESCE((
            SELECT SUM(sri.quantity)
            FROM sales_return_items sri
            WHERE sri.bill_item_id = bi.id
          ), 0) AS returned_quantity
        FROM bill_items bi
        JOIN batches b ON b.id = bi.batch_id
        WHERE bi.bill_id = ?
        ORDER BY bi.id
        """
        return [SalesReturnSource(**dict(r)) for r in self.conn.execute(sql, (int(bill_id),)).fetchall()]

    def mark_returned_if_complete(self, bill_id: int) -> bool:
        """Flag the bill RETURNED once every line has been returned in full."""
        cur = self.conn.execute(
            """
            UPDATE bills SET status = 'RETURNED'
            WHERE id = ? AND status = 'COMPLETED'
              AND NOT EXISTS (
                SELECT 1 FROM bill_items bi
                WHERE bi.bill_id = bills.id
                  AND bi.quantity > COALESCE((
                        SELECT SUM(sri.quantity) FROM sales_return_items sri
                        WHERE sri.bill_item_id = bi.id), 0)
              )
            """,
            (int(bill_id),),
        )
        return cur.rowcount > 0

    # ---------- Returns ----------
    def insert_header(
        self,
        return_number: str,
        bill: dict,
        totals: ReturnTotals,
        *,
        user_id: int,
        reason: str | None,
        refund_mode: str,
        notes: str | None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO sales_returns(
                return_number, bill_id, customer_id, user_id, reason,
                refund_mode, total_amount, total_gst, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                return_number, int(bill["id"]), bill.get("customer_id"), int(user_id),
                blank_to_none(reason), refund_mode, totals.total_amount, totals.total_gst,
                blank_to_none(notes),
            ),
        )
        return int(cur.lastrowid)

    def insert_item(self, return_id: int, line: ReturnLine) -> int:
        r = line.split.rounded()
        cur = self.conn.execute(
            """
            INSERT INTO sales_return_items(
                return_id, bill_item_id, batch_id, quantity, unit_price,
                gst_rate, cgst, sgst, total
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(return_id), line.source_id, line.batch_id, line.quantity,
                round(line.unit_price, 4), r.gst_rate, r.cgst, r.sgst, r.total,
            ),
        )
        return int(cur.lastrowid)

    def get(self, return_id: int) -> dict | None:
        r = self.conn.execute("SELECT * FROM sales_returns WHERE id=?", (int(return_id),)).fetchone()
        return dict(r) if r else None

    def list_returns(self, bill_id: int | None = None, limit: int = 50) -> list[dict]:
        sql = """
        SELECT sr.id, sr.return_number, sr.return_date, sr.bill_id, b.bill_number,
               sr.reason, sr.refund_mode,
               CAST(sr.total_amount AS REAL) AS total_amount,
               CAST(sr.total_gst AS REAL)    AS total_gst,
               sr.status
        FROM sales_returns sr
        JOIN bills b ON b.id = sr.bill_id
        """
        params: list = []
        if bill_id is not None:
            sql += " WHERE sr.bill_id = ?"
            params.append(int(bill_id))
        sql += " ORDER BY sr.id DESC LIMIT ?"
        params.append(int(limit))
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def list_items(self, return_id: int) -> list[dict]:
        sql = """
        SELECT sri.id, sri.bill_item_id, sri.batch_id, bi.medicine_name, bi.batch_number,
               sri.quantity,
               CAST(sri.unit_price AS REAL) AS unit_price,
               CAST(sri.gst_rate AS REAL)   AS gst_rate,
               CAST(sri.cgst AS REAL)       AS cgst,
               CAST(sri.sgst AS REAL)       AS sgst,
               CAST(sri.total AS REAL)      AS total
        FROM sales_return_items sri
        JOIN bill_items bi ON bi.id = sri.bill_item_id
        WHERE sri.return_id = ?
        ORDER BY sri.id
        """
        return [dict(r) for r in self.conn.execute(sql, (int(return_id),)).fetchall()]
