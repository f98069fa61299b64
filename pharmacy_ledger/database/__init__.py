# pharmacy_ledger/database/__init__.py
from __future__ import annotations

from contextlib import contextmanager
from itertools import count
from pathlib import Path
from typing import Iterator
import logging
import sqlite3

from ..config import DB_PATH
from . import schema as schema_module
from .seeders.default_data import seed as seed_default_data
from .versioning import ensure_version

_log = logging.getLogger(__name__)
_savepoints = count(1)


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema & seed data are applied idempotently.
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    # Always apply the schema (idempotent: CREATE IF NOT EXISTS / late-column backfill)
    schema_module.init_schema(path)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")

    ensure_version(conn)
    # Seeders should be safe to run repeatedly (idempotent).
    seed_default_data(conn)

    conn.commit()
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    One all-or-nothing unit of work.

    Outside a transaction this takes the database write lock up front
    (BEGIN IMMEDIATE), so a read-then-write inside the block cannot interleave
    with another writer. Inside an open transaction it nests with a SAVEPOINT.
    Any exception rolls back every statement issued in the block.
    """
    if conn.in_transaction:
        name = f"ledger_sp_{next(_savepoints)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        else:
            conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        _log.debug("transaction rolled back")
        raise
    else:
        conn.commit()


__all__ = [
    "get_connection",
    "transaction",
]
