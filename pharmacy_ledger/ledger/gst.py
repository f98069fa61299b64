# pharmacy_ledger/ledger/gst.py
"""
CGST/SGST split under the two pricing conventions.

- exclusive_split: purchase entry, tax added on top of the subtotal.
- inclusive_split: returns, tax extracted from a retail amount.

Values are carried unrounded; money() rounds half-up to paise and is applied
when a figure is persisted (GstSplit.rounded()).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..constants import GST_RATES

__all__ = ["GST_RATES", "GstSplit", "money", "exclusive_split", "inclusive_split"]

_PAISE = Decimal("0.01")


def money(x) -> float:
    """Round half-up to 2 decimals."""
    return float(Decimal(str(x or 0)).quantize(_PAISE, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class GstSplit:
    gst_rate: float
    net_amount: float   # tax-exclusive value
    cgst: float
    sgst: float
    total_gst: float
    total: float        # tax-inclusive value

    def rounded(self) -> "GstSplit":
        return GstSplit(
            gst_rate=self.gst_rate,
            net_amount=money(self.net_amount),
            cgst=money(self.cgst),
            sgst=money(self.sgst),
            total_gst=money(self.total_gst),
            total=money(self.total),
        )


def _rate(gst_rate) -> float:
    r = float(gst_rate or 0)
    if r < 0:
        raise ValueError(f"GST rate cannot be negative: {gst_rate!r}")
    return r


def exclusive_split(subtotal, gst_rate) -> GstSplit:
    subtotal = float(subtotal or 0)
    rate = _rate(gst_rate)
    if rate == 0:
        return GstSplit(0.0, subtotal, 0.0, 0.0, 0.0, subtotal)
    half = subtotal * (rate / 2) / 100
    total_gst = half + half
    return GstSplit(rate, subtotal, half, half, total_gst, subtotal + total_gst)


def inclusive_split(amount, gst_rate) -> GstSplit:
    amount = float(amount or 0)
    rate = _rate(gst_rate)
    if rate == 0:
        return GstSplit(0.0, amount, 0.0, 0.0, 0.0, amount)
    gst = amount * rate / (100 + rate)
    return GstSplit(rate, amount - gst, gst / 2, gst / 2, gst, amount)
