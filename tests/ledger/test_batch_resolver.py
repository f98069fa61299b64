import pytest

from pharmacy_ledger.ledger import (
    BatchSnapshot,
    CreateBatch,
    IncrementBatch,
    PurchaseLine,
    resolve_batch_upsert,
)


def _line(**kw) -> PurchaseLine:
    base = dict(
        medicine_id=1, batch_number="PCM-001", expiry_date="2027-06-30",
        quantity=5, purchase_price=50, mrp=80, selling_price=70, pack_size=10,
    )
    base.update(kw)
    return PurchaseLine(**base)


def test_existing_batch_resolves_to_increment():
    existing = BatchSnapshot(batch_id=7, medicine_id=1, batch_number="PCM-001", quantity=100)
    action = resolve_batch_upsert(existing, _line(), purchase_id=3, supplier_id=2)

    assert isinstance(action, IncrementBatch)
    assert action.kind == "increment"
    assert action.batch_id == 7
    assert action.add_pieces == 50
    assert existing.quantity + action.add_pieces == 150
    assert action.purchase_id == 3 and action.supplier_id == 2


def test_increment_overwrites_prices_and_expiry():
    existing = BatchSnapshot(7, 1, "PCM-001", 100)
    action = resolve_batch_upsert(existing, _line(purchase_price=55, mrp=90, selling_price=75, expiry_date="2028-01-31"))
    assert (action.purchase_price, action.mrp, action.selling_price) == (55.0, 90.0, 75.0)
    assert action.expiry_date == "2028-01-31"


def test_blank_rack_and_box_keep_stored_location():
    existing = BatchSnapshot(7, 1, "PCM-001", 100)
    action = resolve_batch_upsert(existing, _line(rack="  ", box=None))
    assert action.rack is None
    assert action.box is None


def test_no_existing_batch_resolves_to_create():
    action = resolve_batch_upsert(None, _line(quantity=10, free_quantity=2, rack="R2"), purchase_id=3, supplier_id=2)

    assert isinstance(action, CreateBatch)
    assert action.kind == "create"
    assert action.batch.quantity == 120
    assert action.batch.rack == "R2"
    assert action.batch.gst_rate == 12.0


def test_create_keeps_line_gst_rate():
    action = resolve_batch_upsert(None, _line(gst_rate=5))
    assert action.batch.gst_rate == 5.0


def test_snapshot_for_other_key_is_not_merged():
    other = BatchSnapshot(7, 2, "PCM-001", 100)
    assert isinstance(resolve_batch_upsert(other, _line()), CreateBatch)

    other_code = BatchSnapshot(7, 1, "PCM-002", 100)
    assert isinstance(resolve_batch_upsert(other_code, _line()), CreateBatch)


def test_batch_code_is_trimmed_before_matching():
    existing = BatchSnapshot(7, 1, "PCM-001", 100)
    assert isinstance(resolve_batch_upsert(existing, _line(batch_number=" PCM-001 ")), IncrementBatch)


def test_missing_pack_size_uses_default():
    action = resolve_batch_upsert(None, _line(pack_size=None, quantity=4))
    assert action.batch.pack_size == 10
    assert action.batch.quantity == 40


def test_negative_quantity_raises():
    with pytest.raises(ValueError):
        resolve_batch_upsert(None, _line(quantity=-1))
