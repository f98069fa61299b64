# pharmacy_ledger/ledger/units.py
"""
Strip <-> piece conversion.

Stock is held in pieces (the dispensable unit); suppliers sell strips.
`normalize_pack_size` is the single place a missing or non-positive pack size
is replaced with DEFAULT_PACK_SIZE. Fractional counts are rejected, never truncated.
"""
from __future__ import annotations

from ..constants import DEFAULT_PACK_SIZE


def _whole(value, what: str) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{what} must be a whole number, got {value!r}.")
    return int(value)


def normalize_pack_size(pack_size) -> int:
    if pack_size is None:
        return DEFAULT_PACK_SIZE
    if isinstance(pack_size, float):
        _whole(pack_size, "Pack size")
    try:
        n = int(pack_size)
    except (TypeError, ValueError):
        return DEFAULT_PACK_SIZE
    return n if n >= 1 else DEFAULT_PACK_SIZE


def pieces_from_strips(strips, free_strips=0, pack_size=None) -> int:
    """
    Total pieces received for a line: (strips + free_strips) * pack_size.
    Free strips count towards stock, never towards cost.
    """
    strips = _whole(strips or 0, "Strips")
    free_strips = _whole(free_strips or 0, "Free strips")
    if strips < 0 or free_strips < 0:
        raise ValueError("Strip quantities cannot be negative.")
    return (strips + free_strips) * normalize_pack_size(pack_size)


def strips_from_pieces(pieces, pack_size=None) -> tuple[int, int]:
    """Split a piece count into (whole strips, loose pieces)."""
    size = normalize_pack_size(pack_size)
    return divmod(_whole(pieces, "Pieces"), size)
