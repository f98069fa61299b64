# pharmacy_ledger/utils/helpers.py
from datetime import date
from typing import Optional


def period_key(d: date) -> str:
    """Two-digit year + two-digit month, e.g. date(2025, 3, 9) -> '2503'."""
    return f"{d.year % 100:02d}{d.month:02d}"


def blank_to_none(v: Optional[str]) -> Optional[str]:
    """Trim text; empty strings become None (so SQL COALESCE keeps prior values)."""
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def iso_date(v):
    """date/datetime -> 'YYYY-MM-DD'; anything else is returned unchanged."""
    if isinstance(v, date):
        return v.isoformat()[:10]
    return v
