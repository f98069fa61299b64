import logging
from datetime import date

import pytest

from pharmacy_ledger.database.repositories import PurchasesRepo, SuppliersRepo
from pharmacy_ledger.ledger import (
    NotFoundError,
    PersistenceError,
    PurchaseHeader,
    PurchaseLine,
    ValidationError,
)
from pharmacy_ledger.services import add_opening_batch, save_purchase, update_purchase_header


def _header(ids, **kw) -> PurchaseHeader:
    base = dict(supplier_id=ids["supplier_medline"], invoice_number="INV-7781", invoice_date="2025-03-05")
    base.update(kw)
    return PurchaseHeader(**base)


def _line(medicine_id, batch_number, **kw) -> PurchaseLine:
    base = dict(
        medicine_id=medicine_id, batch_number=batch_number, expiry_date="2027-09-30",
        quantity=10, purchase_price=50, mrp=80, selling_price=70,
    )
    base.update(kw)
    return PurchaseLine(**base)


def _count(conn, table: str) -> int:
    return int(conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])


def test_new_batch_created_with_free_strips_and_exclusive_tax(conn, ids):
    res = save_purchase(conn, _header(ids), [
        _line(ids["med_pcm"], "PCM-002", free_quantity=2, pack_size=10, gst_rate=12),
    ])

    batch = conn.execute("SELECT * FROM batches WHERE id=?", (res.batch_ids[0],)).fetchone()
    assert batch["batch_number"] == "PCM-002"
    assert batch["quantity"] == 120
    assert batch["purchase_id"] == res.purchase_id
    assert batch["supplier_id"] == ids["supplier_medline"]

    p = PurchasesRepo(conn).get(res.purchase_id)
    assert float(p["subtotal"]) == 500
    assert float(p["cgst_amount"]) == 30
    assert float(p["sgst_amount"]) == 30
    assert float(p["grand_total"]) == 560
    assert res.totals.grand_total == 560


def test_existing_batch_is_incremented_not_duplicated(conn, ids, stock):
    before = _count(conn, "batches")
    res = save_purchase(conn, _header(ids), [
        _line(ids["med_pcm"], "PCM-001", quantity=5, pack_size=10, purchase_price=85, rack=""),
    ])

    assert res.batch_ids == (ids["batch_pcm"],)
    assert stock(ids["batch_pcm"]) == 150
    assert _count(conn, "batches") == before
    row = conn.execute("SELECT * FROM batches WHERE id=?", (ids["batch_pcm"],)).fetchone()
    assert float(row["purchase_price"]) == 85
    assert row["rack"] == "R1"              # blank rack keeps stored location
    assert float(row["gst_rate"]) == 12     # GST fixed at creation


def test_same_batch_twice_in_one_invoice_merges(conn, ids):
    res = save_purchase(conn, _header(ids), [
        _line(ids["med_amox"], "AMX-100", quantity=2),
        _line(ids["med_amox"], "AMX-100", quantity=3, free_quantity=1),
    ])

    assert res.batch_ids[0] == res.batch_ids[1]
    rows = conn.execute("SELECT quantity FROM batches WHERE batch_number='AMX-100'").fetchall()
    assert len(rows) == 1
    assert rows[0]["quantity"] == (2 + 3 + 1) * 15
    assert len(PurchasesRepo(conn).list_items(res.purchase_id)) == 2


def test_missing_rate_and_pack_size_come_from_catalog(conn, ids):
    res = save_purchase(conn, _header(ids), [
        _line(ids["med_amox"], "AMX-200", quantity=4, purchase_price=100),
        _line(ids["med_ctz"], "CTZ-900", quantity=1, purchase_price=100),
    ])

    amx = conn.execute("SELECT * FROM batches WHERE batch_number='AMX-200'").fetchone()
    assert amx["tablets_per_strip"] == 15
    assert amx["quantity"] == 60
    ctz = conn.execute("SELECT * FROM batches WHERE batch_number='CTZ-900'").fetchone()
    assert float(ctz["gst_rate"]) == 5

    # 400 @ 12% + 100 @ 5%
    assert res.totals.subtotal == 500
    assert res.totals.total_gst == 53
    assert res.totals.grand_total == 553


def test_header_totals_equal_sum_of_items(conn, ids):
    res = save_purchase(conn, _header(ids), [
        _line(ids["med_pcm"], "PCM-010", quantity=3, purchase_price=33.33, gst_rate=18),
        _line(ids["med_ctz"], "CTZ-010", quantity=7, purchase_price=12.49, gst_rate=5),
    ])
    items = PurchasesRepo(conn).list_items(res.purchase_id)
    assert round(sum(i["total"] for i in items), 2) == res.totals.grand_total
    assert round(sum(i["total_gst"] for i in items), 2) == res.totals.total_gst


def test_every_bad_line_reported_and_nothing_written(conn, ids):
    before = _count(conn, "purchases")
    with pytest.raises(ValidationError) as ei:
        save_purchase(conn, _header(ids), [
            _line(ids["med_pcm"], "PCM-003", quantity=0),
            _line(ids["med_pcm"], "PCM-004"),
            _line(ids["med_pcm"], "", mrp=None),
        ])
    assert ei.value.line_numbers == [1, 3]
    assert _count(conn, "purchases") == before


def test_header_problems_reported(conn, ids):
    with pytest.raises(ValidationError) as ei:
        save_purchase(conn, _header(ids, invoice_number=" ", invoice_date="05/03/2025"), [])
    labels = {i.label for i in ei.value.issues}
    assert {"invoice number", "invoice date", "items"} <= labels


def test_gst_rate_outside_slabs_rejected(conn, ids):
    with pytest.raises(ValidationError):
        save_purchase(conn, _header(ids), [_line(ids["med_pcm"], "PCM-005", gst_rate=7)])


def test_failure_mid_invoice_rolls_everything_back(conn, ids, stock):
    purchases_before = _count(conn, "purchases")
    batches_before = _count(conn, "batches")

    with pytest.raises(PersistenceError) as ei:
        save_purchase(conn, _header(ids), [
            _line(ids["med_pcm"], "PCM-001", quantity=5),
            _line(999_999, "GHOST-1"),
        ])

    assert ei.value.line_no == 2
    assert ei.value.step == "create batch"
    assert "line 2" in str(ei.value)
    assert _count(conn, "purchases") == purchases_before
    assert _count(conn, "batches") == batches_before
    assert _count(conn, "purchase_items") == 0
    assert stock(ids["batch_pcm"]) == 100
    assert not conn.in_transaction


def test_commit_is_logged(conn, ids, caplog):
    caplog.set_level(logging.INFO, logger="pharmacy_ledger")
    save_purchase(conn, _header(ids), [_line(ids["med_pcm"], "PCM-006")])
    events = [getattr(r, "extra_payload", {}) for r in caplog.records]
    assert {"op": "purchase", "phase": "commit"}.items() <= next(
        e for e in events if e.get("phase") == "commit"
    ).items()


def test_header_update_leaves_lines_and_stock(conn, ids, stock):
    res = save_purchase(conn, _header(ids), [_line(ids["med_pcm"], "PCM-001", quantity=5)])
    update_purchase_header(conn, res.purchase_id, _header(
        ids, supplier_id=ids["supplier_apex"], invoice_number="INV-7781A",
        payment_status="PARTIAL", paid_amount=200, due_date="2025-04-04",
    ))

    p = PurchasesRepo(conn).get(res.purchase_id)
    assert p["invoice_number"] == "INV-7781A"
    assert p["supplier_id"] == ids["supplier_apex"]
    assert p["payment_status"] == "PARTIAL"
    assert float(p["grand_total"]) == res.totals.grand_total
    assert stock(ids["batch_pcm"]) == 150
    assert len(PurchasesRepo(conn).list_items(res.purchase_id)) == 1


def test_header_update_errors(conn, ids):
    with pytest.raises(NotFoundError):
        update_purchase_header(conn, 424242, _header(ids))
    with pytest.raises(ValidationError):
        update_purchase_header(conn, 1, _header(ids, payment_status="SETTLED"))


def test_opening_batch_links_supplier_without_purchase(conn, ids):
    batch_id = add_opening_batch(conn, ids["supplier_apex"], _line(ids["med_amox"], "AMX-OPEN", quantity=2, rack="R9"))

    row = conn.execute("SELECT * FROM batches WHERE id=?", (batch_id,)).fetchone()
    assert row["purchase_id"] is None
    assert row["quantity"] == 30
    listed = SuppliersRepo(conn).list_batches(ids["supplier_apex"])
    assert batch_id in [b["batch_id"] for b in listed]


def test_opening_batch_requires_supplier(conn, ids):
    with pytest.raises(ValidationError) as ei:
        add_opening_batch(conn, None, _line(ids["med_amox"], "AMX-OPEN"))
    assert ei.value.issues[0].label == "supplier"


def test_recent_purchases_listed_with_supplier(conn, ids):
    save_purchase(conn, _header(ids), [_line(ids["med_pcm"], "PCM-007")])
    save_purchase(conn, _header(ids, supplier_id=ids["supplier_apex"], invoice_number="AP-1",
                                invoice_date="2025-03-09"), [_line(ids["med_ctz"], "CTZ-007")])
    rows = PurchasesRepo(conn).list_purchases(limit=10)
    assert [r["supplier_name"] for r in rows] == ["Apex Pharma", "Medline Distributors"]
    assert len(PurchasesRepo(conn).list_purchases(limit=1)) == 1


def test_date_objects_stored_as_iso_text(conn, ids):
    res = save_purchase(conn, _header(ids, invoice_date=date(2025, 3, 5), due_date=date(2025, 4, 4)), [
        _line(ids["med_pcm"], "PCM-011", expiry_date=date(2027, 9, 30)),
    ])
    p = conn.execute(
        "SELECT invoice_date, typeof(invoice_date) AS t, due_date FROM purchases WHERE id=?", (res.purchase_id,)
    ).fetchone()
    assert (p["invoice_date"], p["t"], p["due_date"]) == ("2025-03-05", "text", "2025-04-04")
    expiry = conn.execute("SELECT expiry_date FROM batches WHERE id=?", (res.batch_ids[0],)).fetchone()[0]
    assert expiry == "2027-09-30"
