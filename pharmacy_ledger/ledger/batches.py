# pharmacy_ledger/ledger/batches.py
"""
Batch upsert resolution for an incoming purchase line.

A batch is keyed by (medicine_id, batch_number). The resolver is pure: given
the stored snapshot (or None) it returns the action the repository must apply.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..utils.helpers import blank_to_none
from .purchases import PurchaseLine
from .units import normalize_pack_size, pieces_from_strips


@dataclass(frozen=True)
class BatchSnapshot:
    batch_id: int
    medicine_id: int
    batch_number: str
    quantity: int


@dataclass(frozen=True)
class NewBatch:
    medicine_id: int
    batch_number: str
    expiry_date: str
    purchase_price: float
    mrp: float
    selling_price: float
    quantity: int           # pieces
    pack_size: int
    gst_rate: float
    rack: Optional[str]
    box: Optional[str]
    purchase_id: Optional[int]
    supplier_id: Optional[int]


@dataclass(frozen=True)
class IncrementBatch:
    batch_id: int
    add_pieces: int
    expiry_date: str
    purchase_price: float
    mrp: float
    selling_price: float
    pack_size: int
    rack: Optional[str]     # None keeps the stored location
    box: Optional[str]
    purchase_id: Optional[int]
    supplier_id: Optional[int]

    kind = "increment"


@dataclass(frozen=True)
class CreateBatch:
    batch: NewBatch

    kind = "create"


BatchAction = Union[IncrementBatch, CreateBatch]


def resolve_batch_upsert(
    existing: Optional[BatchSnapshot],
    line: PurchaseLine,
    *,
    purchase_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
) -> BatchAction:
    """
    Merge into `existing` when it is the same (medicine, batch code), else create.

    Increment: prices, pack size and expiry are last-write-wins, rack/box only
    when the line carries a value, GST rate untouched.
    """
    batch_number = str(line.batch_number).strip()
    pack_size = normalize_pack_size(line.pack_size)
    pieces = pieces_from_strips(line.quantity, line.free_quantity, pack_size)

    if (
        existing is not None
        and int(existing.medicine_id) == int(line.medicine_id)
        and existing.batch_number == batch_number
    ):
        return IncrementBatch(
            batch_id=int(existing.batch_id),
            add_pieces=pieces,
            expiry_date=line.expiry_date,
            purchase_price=float(line.purchase_price),
            mrp=float(line.mrp),
            selling_price=float(line.selling_price),
            pack_size=pack_size,
            rack=blank_to_none(line.rack),
            box=blank_to_none(line.box),
            purchase_id=purchase_id,
            supplier_id=supplier_id,
        )

    return CreateBatch(
        NewBatch(
            medicine_id=int(line.medicine_id),
            batch_number=batch_number,
            expiry_date=line.expiry_date,
            purchase_price=float(line.purchase_price),
            mrp=float(line.mrp),
            selling_price=float(line.selling_price),
            quantity=pieces,
            pack_size=pack_size,
            gst_rate=line.effective_gst_rate,
            rack=blank_to_none(line.rack),
            box=blank_to_none(line.box),
            purchase_id=purchase_id,
            supplier_id=supplier_id,
        )
    )
