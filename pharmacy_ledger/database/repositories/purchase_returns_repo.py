# pharmacy_ledger/database/repositories/purchase_returns_repo.py
from __future__ import annotations

import sqlite3

from ...constants import SUPPLIER_RETURN_STATUSES
from ...ledger.errors import NotFoundError, ValidationError
from ...ledger.returns import ReturnLine, ReturnTotals
from ...utils.helpers import blank_to_none


class PurchaseReturnsRepo:
    """Returns of stock to a supplier. Writes do not commit."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def insert_header(
        self,
        return_number: str,
        supplier_id: int,
        totals: ReturnTotals,
        *,
        user_id: int,
        reason: str,
        purchase_id: int | None = None,
        notes: str | None = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO purchase_returns(
                return_number, supplier_id, purchase_id, user_id, reason,
                total_amount, total_gst, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                return_number, int(supplier_id), purchase_id, int(user_id), reason,
                totals.total_amount, totals.total_gst, blank_to_none(notes),
            ),
        )
        return int(cur.lastrowid)

    def insert_item(self, return_id: int, medicine_id: int, line: ReturnLine) -> int:
        r = line.split.rounded()
        cur = self.conn.execute(
            """
            INSERT INTO purchase_return_items(
                return_id, batch_id, medicine_id, quantity, unit_price,
                gst_rate, cgst, sgst, total
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(return_id), line.batch_id, int(medicine_id), line.quantity,
                line.unit_price, r.gst_rate, r.cgst, r.sgst, r.total,
            ),
        )
        return int(cur.lastrowid)

    def get(self, return_id: int) -> dict | None:
        r = self.conn.execute("SELECT * FROM purchase_returns WHERE id=?", (int(return_id),)).fetchone()
        return dict(r) if r else None

    def list_returns(self, supplier_id: int | None = None, limit: int = 50) -> list[dict]:
        sql = """
        SELECT pr.id, pr.return_number, pr.return_date, pr.supplier_id, s.name AS supplier_name,
               pr.purchase_id, pr.reason,
               CAST(pr.total_amount AS REAL) AS total_amount,
               CAST(pr.total_gst AS REAL)    AS total_gst,
               pr.status, pr.notes
        FROM purchase_returns pr
        JOIN suppliers s ON s.id = pr.supplier_id
        """
        params: list = []
        if supplier_id is not None:
            sql += " WHERE pr.supplier_id = ?"
            params.append(int(supplier_id))
        sql += " ORDER BY pr.id DESC LIMIT ?"
        params.append(int(limit))
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def list_items(self, return_id: int) -> list[dict]:
        sql = """
        SELECT pri.id, pri.batch_id, b.batch_number, pri.medicine_id, m.name AS medicine_name,
               pri.quantity,
               CAST(pri.unit_price AS REAL) AS unit_price,
               CAST(pri.gst_rate AS REAL)   AS gst_rate,
               CAST(pri.cgst AS REAL)       AS cgst,
               CAST(pri.sgst AS REAL)       AS sgst,
               CAST(pri.total AS REAL)      AS total
        FROM purchase_return_items pri
        JOIN batches b   ON b.id = pri.batch_id
        JOIN medicines m ON m.id = pri.medicine_id
        WHERE pri.return_id = ?
        ORDER BY pri.id
        """
        return [dict(r) for r in self.conn.execute(sql, (int(return_id),)).fetchall()]

    def set_status(self, return_id: int, status: str) -> None:
        status = (status or "").strip().upper()
        if status not in SUPPLIER_RETURN_STATUSES:
            raise ValidationError(f"Unknown return status {status!r}.")
        cur = self.conn.execute(
            "UPDATE purchase_returns SET status=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (status, int(return_id)),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Supplier return {return_id} not found.")
