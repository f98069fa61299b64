# pharmacy_ledger/utils/validators.py
from datetime import date


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


def is_whole_number(x) -> bool:
    """True iff x parses to a float with no fractional part."""
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and float(val).is_integer())


# ---- Dates ----

def is_iso_date(text) -> bool:
    """True iff `text` is a 'YYYY-MM-DD' date."""
    if isinstance(text, date):
        return True
    if not non_empty(text):
        return False
    try:
        date.fromisoformat(str(text).strip())
    except ValueError:
        return False
    return True
