# pharmacy_ledger/database/repositories/medicines_repo.py
from __future__ import annotations
from dataclasses import dataclass, fields
import sqlite3

from ...constants import DEFAULT_GST_RATE, DEFAULT_HSN_CODE, DEFAULT_PACK_SIZE, GST_RATES
from ...ledger.errors import NotFoundError, ValidationError
from .. import transaction


@dataclass
class Medicine:
    id: int | None
    name: str
    generic_name: str | None = None
    manufacturer: str | None = None
    hsn_code: str = DEFAULT_HSN_CODE
    gst_rate: float = DEFAULT_GST_RATE
    category: str | None = None
    unit: str | None = "PCS"
    tablets_per_strip: int = DEFAULT_PACK_SIZE
    reorder_level: int = 10
    is_schedule: int = 0
    is_active: int = 1


_COLS = ", ".join(f.name for f in fields(Medicine))

# search-as-you-type: ignore 1-char terms, cap the result list
_MIN_TERM = 2
_SEARCH_LIMIT = 20


class MedicinesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def get(self, medicine_id: int) -> Medicine | None:
        r = self.conn.execute(
            f"SELECT {_COLS} FROM medicines WHERE id=?", (medicine_id,)
        ).fetchone()
        return Medicine(**dict(r)) if r else None

    def search(self, term: str) -> list[Medicine]:
        term = (term or "").strip()
        if len(term) < _MIN_TERM:
            return []
        pattern = f"%{term}%"
        rows = self.conn.execute(
            f"""
            SELECT {_COLS} FROM medicines
             WHERE is_active = 1
               AND (name LIKE ? OR generic_name LIKE ? OR manufacturer LIKE ?)
             ORDER BY name
             LIMIT ?
            """,
            (pattern, pattern, pattern, _SEARCH_LIMIT),
        ).fetchall()
        return [Medicine(**dict(r)) for r in rows]

    def create(self, medicine: Medicine) -> int:
        name = (medicine.name or "").strip()
        if not name:
            raise ValidationError("Medicine name cannot be empty.")
        gst_rate = DEFAULT_GST_RATE if medicine.gst_rate is None else float(medicine.gst_rate)
        if gst_rate not in GST_RATES:
            raise ValidationError(f"GST rate must be one of {', '.join(str(r) for r in GST_RATES)}.")
        pack = int(medicine.tablets_per_strip or DEFAULT_PACK_SIZE)
        if pack < 1:
            raise ValidationError("Tablets per strip must be at least 1.")
        with transaction(self.conn):
            cur = self.conn.execute(
                """
                INSERT INTO medicines(name, generic_name, manufacturer, hsn_code, gst_rate,
                                      category, unit, tablets_per_strip, reorder_level, is_schedule)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    name,
                    medicine.generic_name or None,
                    medicine.manufacturer or None,
                    medicine.hsn_code or DEFAULT_HSN_CODE,
                    gst_rate,
                    medicine.category or None,
                    medicine.unit or "PCS",
                    pack,
                    int(medicine.reorder_level or 0),
                    1 if medicine.is_schedule else 0,
                ),
            )
        return int(cur.lastrowid)

    def deactivate(self, medicine_id: int) -> None:
        """Catalog entries are never deleted, only hidden from search."""
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE medicines SET is_active=0, updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (medicine_id,),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Medicine {medicine_id} not found.")
