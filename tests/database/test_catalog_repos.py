import pytest

from pharmacy_ledger.database.repositories import Medicine, MedicinesRepo, Supplier, SuppliersRepo
from pharmacy_ledger.ledger import NotFoundError, ValidationError


# ---------- suppliers ----------

def test_supplier_create_normalizes_fields(conn):
    repo = SuppliersRepo(conn)
    sid = repo.create(Supplier(None, name="  Zenith Meds ", gstin="33aazcz1111q1z9", phone=" ", payment_terms=None))
    s = repo.get(sid)
    assert s.name == "Zenith Meds"
    assert s.gstin == "33AAZCZ1111Q1Z9"
    assert s.phone is None
    assert s.payment_terms == 30
    assert s.state == "Tamil Nadu"


@pytest.mark.parametrize("kw", [{"name": "  "}, {"name": "X", "payment_terms": -1}])
def test_supplier_invalid_input_rejected(conn, kw):
    with pytest.raises(ValidationError):
        SuppliersRepo(conn).create(Supplier(None, **kw))


def test_supplier_update_and_missing_row(conn, ids):
    repo = SuppliersRepo(conn)
    s = repo.get(ids["supplier_apex"])
    s.city = "Madurai"
    repo.update(s)
    assert repo.get(ids["supplier_apex"]).city == "Madurai"

    s.id = 31337
    with pytest.raises(NotFoundError):
        repo.update(s)


def test_supplier_soft_delete(conn, ids):
    repo = SuppliersRepo(conn)
    repo.deactivate(ids["supplier_apex"])

    assert [s.name for s in repo.list_suppliers()] == ["Medline Distributors"]
    assert len(repo.list_suppliers(active_only=False)) == 2
    assert repo.get(ids["supplier_apex"]).is_active == 0
    # history stays attached
    assert conn.execute("SELECT COUNT(*) FROM batches WHERE supplier_id=?", (ids["supplier_apex"],)).fetchone()[0] == 1
    with pytest.raises(NotFoundError):
        repo.deactivate(999)


def test_supplier_search(conn):
    repo = SuppliersRepo(conn)
    assert [s.name for s in repo.search("coimbatore")] == ["Apex Pharma"]
    assert [s.name for s in repo.search("9840")] == ["Medline Distributors"]
    assert len(repo.search("")) == 2


def test_supplier_batches_direct_and_through_purchase(conn, ids):
    repo = SuppliersRepo(conn)
    direct = repo.list_batches(ids["supplier_medline"])
    assert [b["batch_number"] for b in direct] == ["PCM-001"]
    assert direct[0]["gst_rate"] == 12

    # a batch with no supplier of its own, linked only by its purchase
    conn.execute(
        "INSERT INTO purchases(invoice_number, invoice_date, supplier_id, user_id) VALUES ('X-1', '2025-01-01', ?, 1)",
        (ids["supplier_apex"],),
    )
    pid = conn.execute("SELECT last_insert_rowid()").fetchone()[0]
    conn.execute(
        "INSERT INTO batches(medicine_id, batch_number, expiry_date, purchase_price, mrp, selling_price, quantity, purchase_id) "
        "VALUES (?, 'AMX-P1', '2026-05-31', 10, 20, 18, 0, ?)",
        (ids["med_amox"], pid),
    )
    conn.commit()

    numbers = [b["batch_number"] for b in repo.list_batches(ids["supplier_apex"])]
    assert numbers == ["AMX-P1", "CTZ-001"]
    in_stock = [b["batch_number"] for b in repo.list_batches(ids["supplier_apex"], in_stock_only=True)]
    assert in_stock == ["CTZ-001"]


# ---------- medicines ----------

def test_medicine_search_needs_two_characters(conn):
    repo = MedicinesRepo(conn)
    assert repo.search("p") == []
    assert [m.name for m in repo.search("pa")] == ["Paracetamol 500mg"]
    assert [m.name for m in repo.search("cipla")] == ["Amoxicillin 250mg"]


def test_medicine_create_and_deactivate(conn):
    repo = MedicinesRepo(conn)
    mid = repo.create(Medicine(None, name="Pantoprazole 40mg", gst_rate=12, tablets_per_strip=15))
    assert repo.get(mid).tablets_per_strip == 15
    assert "Pantoprazole 40mg" in [m.name for m in repo.search("panto")]

    repo.deactivate(mid)
    assert repo.search("panto") == []
    assert repo.get(mid).is_active == 0


@pytest.mark.parametrize("kw", [{"name": ""}, {"name": "X", "gst_rate": 7}, {"name": "X", "tablets_per_strip": -2}])
def test_medicine_invalid_input_rejected(conn, kw):
    with pytest.raises(ValidationError):
        MedicinesRepo(conn).create(Medicine(None, **kw))
