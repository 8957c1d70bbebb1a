"""Tests for expenses, returns and receipt storage."""
import io
from decimal import Decimal

import pytest

from app.ledgerly.db import session_scope
from app.ledgerly.modules.expenses.models import Expense
from app.ledgerly.storage import LocalStorage, StorageError, check_owner_prefix
from tests.conftest import OTHER_EMAIL, login, post


def _expense_form(merchant="Staples", **extra):
    data = {
        "merchant": merchant,
        "category": "office",
        "date": "2024-02-10",
        "total": "120.00",
        "tax": "9.60",
        "description": "Printer paper",
        "is_tax_deductible": "on",
        "business_use_percentage": "50",
        "tax_category": "supplies",
    }
    data.update(extra)
    return data


def _create_expense(app, client, merchant="Staples", **extra):
    r = post(client, "/dashboard/expenses/new", _expense_form(merchant, **extra))
    assert r.status_code == 302
    with session_scope(app) as s:
        return s.query(Expense.id).filter(Expense.merchant == merchant).scalar()


def test_create_expense_computes_deductible(app, client):
    login(client)
    expense_id = _create_expense(app, client)
    with session_scope(app) as s:
        e = s.get(Expense, expense_id)
        assert e.total == Decimal("120.00")
        assert e.deductible_amount == Decimal("60.00")
        assert e.is_tax_deductible is True
        assert e.is_return is False

    r = client.get("/dashboard/expenses")
    assert r.status_code == 200
    assert b"Staples" in r.data


def test_expense_validation(client):
    login(client)
    r = post(client, "/dashboard/expenses/new", _expense_form(business_use_percentage="101"))
    assert r.status_code == 400
    assert b"Business use percentage must be between 0 and 100." in r.data

    r = post(client, "/dashboard/expenses/new", _expense_form(total="lots"))
    assert r.status_code == 400


def test_return_links_to_original(app, client):
    login(client)
    original_id = _create_expense(app, client)
    return_id = _create_expense(
        app, client, "Staples Return", is_return="on", original_expense_id=original_id, total="20.00"
    )
    with session_scope(app) as s:
        ret = s.get(Expense, return_id)
        assert ret.is_return is True
        assert ret.original_expense_id == original_id


def test_return_cannot_point_at_other_users_expense(app, client):
    login(client, email=OTHER_EMAIL)
    foreign_id = _create_expense(app, client, "Their Shop")
    client.post("/auth/logout")

    login(client)
    r = post(
        client,
        "/dashboard/expenses/new",
        _expense_form("Sneaky Return", is_return="on", original_expense_id=foreign_id),
    )
    assert r.status_code == 400
    assert b"Original expense not found." in r.data


def test_edit_and_delete_expense(app, client):
    login(client)
    expense_id = _create_expense(app, client)
    assert client.get(f"/dashboard/expenses/{expense_id}/edit").status_code == 200

    r = post(client, f"/dashboard/expenses/{expense_id}/edit", _expense_form(total="200.00"))
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.get(Expense, expense_id).deductible_amount == Decimal("100.00")

    r = post(client, f"/dashboard/expenses/{expense_id}/delete")
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.get(Expense, expense_id) is None


def test_list_category_filter_and_search(app, client):
    login(client)
    _create_expense(app, client, "Staples")
    _create_expense(app, client, "Delta Airlines", category="travel", description="Flight")

    r = client.get("/dashboard/expenses?category=travel")
    assert b"Delta Airlines" in r.data
    assert b"Staples" not in r.data

    r = client.get("/dashboard/expenses?q=paper")
    assert b"Staples" in r.data
    assert b"Delta Airlines" not in r.data


def test_receipt_upload_and_download(app, client, tmp_path):
    login(client)
    expense_id = _create_expense(app, client)

    r = post(
        client,
        f"/dashboard/expenses/{expense_id}/receipt",
        {"receipt": (io.BytesIO(b"%PDF-1.4 receipt"), "receipt.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        e = s.get(Expense, expense_id)
        key = e.receipt_url
        owner_id = e.user_id
    assert key.startswith(f"{owner_id}/{expense_id}/")
    assert key.endswith("-receipt.pdf")
    assert (tmp_path / "storage" / "receipts" / key).exists()

    r = client.get(f"/dashboard/expenses/{expense_id}/receipt")
    assert r.status_code == 200
    assert r.data == b"%PDF-1.4 receipt"
    assert "attachment" in r.headers["Content-Disposition"]


def test_receipt_rejects_non_image(app, client):
    login(client)
    expense_id = _create_expense(app, client)
    post(
        client,
        f"/dashboard/expenses/{expense_id}/receipt",
        {"receipt": (io.BytesIO(b"MZ"), "tool.exe", "application/x-msdownload")},
        content_type="multipart/form-data",
    )
    with session_scope(app) as s:
        assert s.get(Expense, expense_id).receipt_url is None
    assert client.get(f"/dashboard/expenses/{expense_id}/receipt").status_code == 404


def test_receipt_is_private_to_owner(app, client):
    login(client)
    expense_id = _create_expense(app, client)
    post(
        client,
        f"/dashboard/expenses/{expense_id}/receipt",
        {"receipt": (io.BytesIO(b"\x89PNG"), "r.png", "image/png")},
        content_type="multipart/form-data",
    )
    client.post("/auth/logout")

    login(client, email=OTHER_EMAIL)
    assert client.get(f"/dashboard/expenses/{expense_id}/receipt").status_code == 404
    assert client.get(f"/dashboard/expenses/{expense_id}/edit").status_code == 404
    assert app.test_client().get("/storage/receipts/anything/r.png").status_code == 404


def test_storage_keys_must_start_with_owner(tmp_path):
    assert check_owner_prefix("u1/file.pdf", "u1") == "u1/file.pdf"
    for key in ("u2/file.pdf", "file.pdf", "u1/../u2/file.pdf"):
        with pytest.raises(StorageError):
            check_owner_prefix(key, "u1")

    storage = LocalStorage(root=tmp_path)
    with pytest.raises(StorageError):
        storage.put_for_user("receipts", "u1", "u2/stolen.pdf", b"x")
    assert storage.put_for_user("receipts", "u1", "u1/a.pdf", b"x") == "u1/a.pdf"
    with storage.open_for_user("receipts", "u1", "u1/a.pdf") as f:
        assert f.read() == b"x"


def test_oversized_amounts_are_rejected(app, client):
    login(client)
    r = post(client, "/dashboard/expenses/new", _expense_form(total="1e30"))
    assert r.status_code == 400
    assert b"Total is too large." in r.data
    r = post(client, "/dashboard/expenses/new", _expense_form(tax="99999999999"))
    assert r.status_code == 400
    assert b"Tax is too large." in r.data
    with session_scope(app) as s:
        assert s.query(Expense).count() == 0
