# pharmacy_ledger/database/repositories/suppliers_repo.py
from __future__ import annotations
from dataclasses import dataclass, fields
import sqlite3

from ...constants import DEFAULT_PAYMENT_TERMS, DEFAULT_SUPPLIER_STATE
from ...ledger.errors import NotFoundError, ValidationError
from .. import transaction


@dataclass
class Supplier:
    id: int | None
    name: str
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    gstin: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = DEFAULT_SUPPLIER_STATE
    pincode: str | None = None
    payment_terms: int = DEFAULT_PAYMENT_TERMS
    is_active: int = 1


_COLS = ", ".join(f.name for f in fields(Supplier))


class SuppliersRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _clean(s: str | None) -> str | None:
        if s is None:
            return None
        s = str(s).strip()
        return s or None

    def _normalized(self, s: Supplier) -> tuple:
        name = self._clean(s.name)
        if not name:
            raise ValidationError("Supplier name cannot be empty.")
        terms = DEFAULT_PAYMENT_TERMS if s.payment_terms in (None, "") else int(s.payment_terms)
        if terms < 0:
            raise ValidationError("Payment terms cannot be negative.")
        gstin = self._clean(s.gstin)
        return (
            name,
            self._clean(s.contact_person),
            self._clean(s.phone),
            self._clean(s.email),
            gstin.upper() if gstin else None,
            self._clean(s.address),
            self._clean(s.city),
            self._clean(s.state) or DEFAULT_SUPPLIER_STATE,
            self._clean(s.pincode),
            terms,
        )

    # ---- Queries ----------------------------------------------------------

    def list_suppliers(self, active_only: bool = True) -> list[Supplier]:
        sql = f"SELECT {_COLS} FROM suppliers"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name"
        return [Supplier(**dict(r)) for r in self.conn.execute(sql).fetchall()]

    def search(self, term: str, active_only: bool = True) -> list[Supplier]:
        """LIKE match on name / contact person / phone / GSTIN / city."""
        pattern = f"%{(term or '').strip()}%"
        sql = (
            f"SELECT {_COLS} FROM suppliers "
            "WHERE (name LIKE ? OR contact_person LIKE ? OR phone LIKE ? "
            "       OR gstin LIKE ? OR city LIKE ?)"
        )
        if active_only:
            sql += " AND is_active = 1"
        sql += " ORDER BY name"
        rows = self.conn.execute(sql, (pattern,) * 5).fetchall()
        return [Supplier(**dict(r)) for r in rows]

    def get(self, supplier_id: int) -> Supplier | None:
        r = self.conn.execute(
            f"SELECT {_COLS} FROM suppliers WHERE id=?", (supplier_id,)
        ).fetchone()
        return Supplier(**dict(r)) if r else None

    def list_batches(self, supplier_id: int, *, in_stock_only: bool = False) -> list[dict]:
        """
        Active batches linked to the supplier, either directly (batches.supplier_id)
        or through the purchase that brought them in.
        """
        sql = """
            SELECT
                b.id AS batch_id, b.batch_number, b.expiry_date,
                CAST(b.purchase_price AS REAL) AS purchase_price,
                CAST(b.mrp AS REAL)            AS mrp,
                CAST(b.selling_price AS REAL)  AS selling_price,
                b.quantity, b.tablets_per_strip, b.rack, b.box, b.supplier_id,
                m.id AS medicine_id, m.name AS medicine_name, m.manufacturer, m.hsn_code,
                CAST(COALESCE(b.gst_rate, 12) AS REAL) AS gst_rate,
                p.invoice_date AS purchase_date
            FROM batches b
            JOIN medicines m ON b.medicine_id = m.id
            LEFT JOIN purchases p ON b.purchase_id = p.id
            WHERE b.is_active = 1
              AND (b.supplier_id = ? OR p.supplier_id = ?)
        """
        if in_stock_only:
            sql += " AND b.quantity > 0"
        sql += " ORDER BY m.name, b.batch_number"
        rows = self.conn.execute(sql, (supplier_id, supplier_id)).fetchall()
        return [dict(r) for r in rows]

    # ---- Mutations --------------------------------------------------------

    def create(self, supplier: Supplier) -> int:
        values = self._normalized(supplier)
        with transaction(self.conn):
            cur = self.conn.execute(
                """
                INSERT INTO suppliers(name, contact_person, phone, email, gstin,
                                      address, city, state, pincode, payment_terms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
        return int(cur.lastrowid)

    def update(self, supplier: Supplier) -> None:
        if supplier.id is None:
            raise ValidationError("Supplier id is required for update.")
        values = self._normalized(supplier)
        with transaction(self.conn):
            cur = self.conn.execute(
                """
                UPDATE suppliers
                   SET name=?, contact_person=?, phone=?, email=?, gstin=?,
                       address=?, city=?, state=?, pincode=?, payment_terms=?,
                       updated_at=CURRENT_TIMESTAMP
                 WHERE id=?
                """,
                values + (supplier.id,),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Supplier {supplier.id} not found.")

    def deactivate(self, supplier_id: int) -> None:
        """Soft delete; purchases and batches keep pointing at the row."""
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE suppliers SET is_active=0, updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (supplier_id,),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Supplier {supplier_id} not found.")
