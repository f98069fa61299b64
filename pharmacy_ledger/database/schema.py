from pathlib import Path
import logging
import sqlite3
import sys

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- users (operator stamp on documents) -------- */
CREATE TABLE IF NOT EXISTS users (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    username   TEXT NOT NULL UNIQUE,
    full_name  TEXT NOT NULL,
    role       TEXT NOT NULL DEFAULT 'staff' CHECK (role IN ('admin','staff')),
    is_active  INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

/* -------- medicines (product master) -------- */
CREATE TABLE IF NOT EXISTS medicines (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    generic_name      TEXT,
    manufacturer      TEXT,
    hsn_code          TEXT NOT NULL DEFAULT '3004',
    gst_rate          NUMERIC NOT NULL DEFAULT 12 CHECK (gst_rate IN (0,5,12,18)),
    category          TEXT,
    unit              TEXT DEFAULT 'PCS',
    tablets_per_strip INTEGER NOT NULL DEFAULT 10 CHECK (tablets_per_strip >= 1),
    reorder_level     INTEGER DEFAULT 10,
    is_schedule       INTEGER NOT NULL DEFAULT 0 CHECK (is_schedule IN (0,1)),
    is_active         INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at        DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at        DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_medicines_name   ON medicines(name);
CREATE INDEX IF NOT EXISTS idx_medicines_active ON medicines(is_active);

/* -------- suppliers (soft-deleted via is_active) -------- */
CREATE TABLE IF NOT EXISTS suppliers (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    name           TEXT NOT NULL,
    contact_person TEXT,
    phone          TEXT,
    email          TEXT,
    gstin          TEXT,
    address        TEXT,
    city           TEXT,
    state          TEXT DEFAULT 'Tamil Nadu',
    pincode        TEXT,
    payment_terms  INTEGER DEFAULT 30 CHECK (payment_terms >= 0),
    is_active      INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at     DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at     DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_suppliers_name  ON suppliers(name);
CREATE INDEX IF NOT EXISTS idx_suppliers_gstin ON suppliers(gstin);

/* -------- purchases (header) -------- */
CREATE TABLE IF NOT EXISTS purchases (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_number TEXT NOT NULL,
    invoice_date   DATE NOT NULL,
    supplier_id    INTEGER NOT NULL REFERENCES suppliers(id),
    user_id        INTEGER NOT NULL REFERENCES users(id),
    subtotal       NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(subtotal AS REAL) >= 0),
    cgst_amount    NUMERIC NOT NULL DEFAULT 0,
    sgst_amount    NUMERIC NOT NULL DEFAULT 0,
    total_gst      NUMERIC NOT NULL DEFAULT 0,
    grand_total    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(grand_total AS REAL) >= 0),
    payment_status TEXT NOT NULL DEFAULT 'PENDING' CHECK (payment_status IN ('PENDING','PARTIAL','PAID')),
    paid_amount    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(paid_amount AS REAL) >= 0),
    due_date       DATE,
    notes          TEXT,
    created_at     DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at     DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_purchases_invoice  ON purchases(invoice_number);
CREATE INDEX IF NOT EXISTS idx_purchases_supplier ON purchases(supplier_id);
CREATE INDEX IF NOT EXISTS idx_purchases_date     ON purchases(invoice_date);

/* -------- batches (stock held in pieces) -------- */
CREATE TABLE IF NOT EXISTS batches (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    medicine_id       INTEGER NOT NULL REFERENCES medicines(id),
    batch_number      TEXT NOT NULL,
    expiry_date       DATE NOT NULL,
    purchase_price    NUMERIC NOT NULL,
    mrp               NUMERIC NOT NULL,
    selling_price     NUMERIC NOT NULL,
    price_type        TEXT NOT NULL DEFAULT 'INCLUSIVE' CHECK (price_type IN ('INCLUSIVE','EXCLUSIVE')),
    quantity          INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
    tablets_per_strip INTEGER NOT NULL DEFAULT 10 CHECK (tablets_per_strip >= 1),
    gst_rate          NUMERIC NOT NULL DEFAULT 12,
    rack              TEXT,
    box               TEXT,
    purchase_id       INTEGER REFERENCES purchases(id),
    supplier_id       INTEGER REFERENCES suppliers(id),
    is_active         INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    created_at        DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at        DATETIME DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (medicine_id, batch_number)
);
CREATE INDEX IF NOT EXISTS idx_batches_medicine ON batches(medicine_id);
CREATE INDEX IF NOT EXISTS idx_batches_expiry   ON batches(expiry_date);
CREATE INDEX IF NOT EXISTS idx_batches_supplier ON batches(supplier_id);

/* -------- purchase lines (quantities in strips) -------- */
CREATE TABLE IF NOT EXISTS purchase_items (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id    INTEGER NOT NULL REFERENCES purchases(id) ON DELETE CASCADE,
    medicine_id    INTEGER NOT NULL REFERENCES medicines(id),
    batch_id       INTEGER NOT NULL REFERENCES batches(id),
    quantity       INTEGER NOT NULL CHECK (quantity > 0),
    free_quantity  INTEGER NOT NULL DEFAULT 0 CHECK (free_quantity >= 0),
    purchase_price NUMERIC NOT NULL,
    mrp            NUMERIC NOT NULL,
    selling_price  NUMERIC NOT NULL,
    gst_rate       NUMERIC NOT NULL,
    cgst           NUMERIC NOT NULL DEFAULT 0,
    sgst           NUMERIC NOT NULL DEFAULT 0,
    total_gst      NUMERIC NOT NULL DEFAULT 0,
    total          NUMERIC NOT NULL,
    created_at     DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_purchase_items_purchase ON purchase_items(purchase_id);

/* -------- sales bills (written by billing; read here for returns) -------- */
CREATE TABLE IF NOT EXISTS bills (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number   TEXT NOT NULL UNIQUE,
    bill_date     DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    customer_id   INTEGER,
    customer_name TEXT,
    user_id       INTEGER NOT NULL REFERENCES users(id),
    grand_total   NUMERIC NOT NULL DEFAULT 0,
    total_gst     NUMERIC NOT NULL DEFAULT 0,
    status        TEXT NOT NULL DEFAULT 'COMPLETED' CHECK (status IN ('COMPLETED','CANCELLED','RETURNED')),
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_bills_number ON bills(bill_number);

CREATE TABLE IF NOT EXISTS bill_items (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id       INTEGER NOT NULL REFERENCES bills(id) ON DELETE CASCADE,
    batch_id      INTEGER NOT NULL REFERENCES batches(id),
    medicine_id   INTEGER NOT NULL REFERENCES medicines(id),
    medicine_name TEXT NOT NULL,
    batch_number  TEXT NOT NULL,
    quantity      INTEGER NOT NULL CHECK (quantity > 0),   /* pieces */
    unit_price    NUMERIC NOT NULL,
    gst_rate      NUMERIC NOT NULL DEFAULT 0,
    total         NUMERIC NOT NULL,
    /* prices as sold (per strip); returns refund from these, not the live batch */
    selling_price     NUMERIC,
    mrp               NUMERIC,
    tablets_per_strip INTEGER,
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_bill_items_bill ON bill_items(bill_id);

/* -------- sales returns (customer -> pharmacy) -------- */
CREATE TABLE IF NOT EXISTS sales_returns (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    return_number TEXT NOT NULL UNIQUE,
    return_date   DATE NOT NULL DEFAULT CURRENT_DATE,
    bill_id       INTEGER NOT NULL REFERENCES bills(id),
    customer_id   INTEGER,
    user_id       INTEGER NOT NULL REFERENCES users(id),
    reason        TEXT,
    refund_mode   TEXT CHECK (refund_mode IN ('CASH','CREDIT_NOTE','ADJUSTMENT')),
    total_amount  NUMERIC NOT NULL DEFAULT 0,
    total_gst     NUMERIC NOT NULL DEFAULT 0,
    status        TEXT NOT NULL DEFAULT 'COMPLETED',
    notes         TEXT,
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_sales_returns_bill ON sales_returns(bill_id);

CREATE TABLE IF NOT EXISTS sales_return_items (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id    INTEGER NOT NULL REFERENCES sales_returns(id) ON DELETE CASCADE,
    bill_item_id INTEGER NOT NULL REFERENCES bill_items(id),
    batch_id     INTEGER NOT NULL REFERENCES batches(id),
    quantity     INTEGER NOT NULL CHECK (quantity > 0),
    unit_price   NUMERIC NOT NULL,   /* per piece */
    gst_rate     NUMERIC NOT NULL,
    cgst         NUMERIC NOT NULL DEFAULT 0,
    sgst         NUMERIC NOT NULL DEFAULT 0,
    total        NUMERIC NOT NULL,
    created_at   DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_sales_return_items_bill_item ON sales_return_items(bill_item_id);

/* -------- supplier returns (pharmacy -> supplier) -------- */
CREATE TABLE IF NOT EXISTS purchase_returns (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    return_number TEXT NOT NULL UNIQUE,
    return_date   DATE NOT NULL DEFAULT CURRENT_DATE,
    supplier_id   INTEGER NOT NULL REFERENCES suppliers(id),
    purchase_id   INTEGER REFERENCES purchases(id),
    user_id       INTEGER NOT NULL REFERENCES users(id),
    reason        TEXT NOT NULL CHECK (reason IN ('EXPIRY','DAMAGE','OVERSTOCK','OTHER')),
    total_amount  NUMERIC NOT NULL DEFAULT 0,
    total_gst     NUMERIC NOT NULL DEFAULT 0,
    status        TEXT NOT NULL DEFAULT 'PENDING' CHECK (status IN ('PENDING','APPROVED','COMPLETED','REJECTED')),
    notes         TEXT,
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at    DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_purchase_returns_supplier ON purchase_returns(supplier_id);

CREATE TABLE IF NOT EXISTS purchase_return_items (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    return_id   INTEGER NOT NULL REFERENCES purchase_returns(id) ON DELETE CASCADE,
    batch_id    INTEGER NOT NULL REFERENCES batches(id),
    medicine_id INTEGER NOT NULL REFERENCES medicines(id),
    quantity    INTEGER NOT NULL CHECK (quantity > 0),
    unit_price  NUMERIC NOT NULL,
    gst_rate    NUMERIC NOT NULL,
    cgst        NUMERIC NOT NULL DEFAULT 0,
    sgst        NUMERIC NOT NULL DEFAULT 0,
    total       NUMERIC NOT NULL,
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);

/* -------- document numbering (one counter per prefix and YYMM) -------- */
CREATE TABLE IF NOT EXISTS document_sequences (
    prefix   TEXT NOT NULL,
    period   TEXT NOT NULL,
    next_seq INTEGER NOT NULL DEFAULT 1 CHECK (next_seq >= 1),
    PRIMARY KEY (prefix, period)
);

/* Stock effects of returns are applied by the repositories, once per
   submission; keep any legacy restock trigger out. */
DROP TRIGGER IF EXISTS trg_restore_stock_on_return;
"""

# Columns added after the first release; older files get them via ALTER TABLE.
_LATE_COLUMNS = {
    "batches": {
        "tablets_per_strip": "INTEGER NOT NULL DEFAULT 10",
        "gst_rate": "NUMERIC NOT NULL DEFAULT 12",
        "supplier_id": "INTEGER REFERENCES suppliers(id)",
    },
    "medicines": {
        "tablets_per_strip": "INTEGER NOT NULL DEFAULT 10",
    },
    "bill_items": {
        "selling_price": "NUMERIC",
        "mrp": "NUMERIC",
        "tablets_per_strip": "INTEGER",
    },
}


def _ensure_late_columns(conn: sqlite3.Connection) -> None:
    """
    Safe migration for older DBs created before the columns in _LATE_COLUMNS existed.
    No-op when already present.
    """
    for table, columns in _LATE_COLUMNS.items():
        cur = conn.execute(f"PRAGMA table_info({table});")
        have = {row[1] for row in cur.fetchall()}  # row[1] = name
        if not have:
            continue  # table not created yet; the schema script builds it whole
        for name, decl in columns.items():
            if name not in have:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl};")


def init_schema(db_path: Path | str = "pharmacy.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        # Backfill columns first: the schema script indexes some of them
        _ensure_late_columns(conn)
        # Apply (idempotent) schema
        conn.executescript(SQL)
        conn.commit()
    finally:
        conn.close()
    _log.debug("schema applied to %s", db_path)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "pharmacy.db"
    init_schema(target)
