# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own database file under tmp_path
# - Schema + default admin user come from pharmacy_ledger.database.get_connection
# - tests/seed_common.sql adds the shared suppliers/medicines/batches/bill
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide handy ids fixture
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from pharmacy_ledger.database import get_connection

# ---------- Paths ----------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SEED_SQL     = PROJECT_ROOT / "tests" / "seed_common.sql"


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.db"


@pytest.fixture()
def conn(db_path: Path):
    """Fresh, seeded database per test; closed afterwards."""
    con = get_connection(db_path)
    try:
        con.executescript(SEED_SQL.read_text(encoding="utf-8"))
        con.commit()
        yield con
    finally:
        con.close()


# ---------- Handy lookups ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common IDs used throughout the ledger tests."""
    def one(sql: str, *p):
        r = conn.execute(sql, p).fetchone()
        return None if r is None else r[0]

    return {
        "supplier_medline": one("SELECT id FROM suppliers WHERE name='Medline Distributors'"),
        "supplier_apex":    one("SELECT id FROM suppliers WHERE name='Apex Pharma'"),
        "med_pcm":  one("SELECT id FROM medicines WHERE name='Paracetamol 500mg'"),
        "med_amox": one("SELECT id FROM medicines WHERE name='Amoxicillin 250mg'"),
        "med_ctz":  one("SELECT id FROM medicines WHERE name='Cetirizine 10mg'"),
        "batch_pcm": one("SELECT id FROM batches WHERE batch_number='PCM-001'"),
        "batch_ctz": one("SELECT id FROM batches WHERE batch_number='CTZ-001'"),
        "bill_id":        one("SELECT id FROM bills WHERE bill_number='B25030001'"),
        "bill_cancelled": one("SELECT id FROM bills WHERE bill_number='B25030002'"),
        "item_pcm": one(
            "SELECT bi.id FROM bill_items bi JOIN bills b ON b.id=bi.bill_id "
            "WHERE b.bill_number='B25030001' AND bi.batch_number='PCM-001'"
        ),
        "item_ctz": one(
            "SELECT bi.id FROM bill_items bi JOIN bills b ON b.id=bi.bill_id "
            "WHERE b.bill_number='B25030001' AND bi.batch_number='CTZ-001'"
        ),
        "user_ops": one("SELECT id FROM users WHERE username='ops'"),
    }


@pytest.fixture()
def stock(conn: sqlite3.Connection):
    """stock(batch_id) -> current on-hand pieces."""
    def qty(batch_id: int) -> int:
        return int(conn.execute("SELECT quantity FROM batches WHERE id=?", (batch_id,)).fetchone()[0])
    return qty
