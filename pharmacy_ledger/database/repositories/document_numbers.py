# pharmacy_ledger/database/repositories/document_numbers.py
from __future__ import annotations

from datetime import date
import sqlite3

from ...utils.helpers import period_key


def next_document_number(conn: sqlite3.Connection, prefix: str, on_date: date | None = None, pad: int = 4) -> str:
    """
    Sequence-backed document number: <prefix><YY><MM><seq>, e.g. SR25030001.

    One counter row per (prefix, YYMM) in document_sequences. Call inside the
    transaction that writes the document so the number and the document commit
    (or roll back) together; the write lock held by that transaction keeps
    concurrent callers from drawing the same value.
    """
    period = period_key(on_date or date.today())
    conn.execute(
        "INSERT INTO document_sequences(prefix, period, next_seq) VALUES (?, ?, 1) "
        "ON CONFLICT(prefix, period) DO NOTHING",
        (prefix, period),
    )
    row = conn.execute(
        "SELECT next_seq FROM document_sequences WHERE prefix=? AND period=?",
        (prefix, period),
    ).fetchone()
    seq = int(row[0])
    conn.execute(
        "UPDATE document_sequences SET next_seq = next_seq + 1 WHERE prefix=? AND period=?",
        (prefix, period),
    )
    return f"{prefix}{period}{seq:0{pad}d}"
