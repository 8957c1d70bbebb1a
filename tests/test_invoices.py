"""Tests for invoices: CRUD, payments, sharing and PDFs."""
import io
from decimal import Decimal

import pdfplumber

from app.ledgerly.db import session_scope
from app.ledgerly.modules.invoices.models import Invoice
from tests.conftest import OTHER_EMAIL, login, post


def _invoice_form(number="INV-0001", **extra):
    data = {
        "invoice_number": number,
        "date": "2024-04-02",
        "status": "sent",
        "terms": "Net 30",
        "bill_to_name": "Acme Corp",
        "bill_to_email": "ap@acme.test",
        "item_id": ["", ""],
        "item_description": ["Consulting", "Travel"],
        "item_quantity": ["10", "1"],
        "item_rate": ["125.50", "80"],
    }
    data.update(extra)
    return data


def _create_invoice(app, client, number="INV-0001", **extra):
    r = post(client, "/dashboard/invoices/new", _invoice_form(number, **extra))
    assert r.status_code == 302
    with session_scope(app) as s:
        return s.query(Invoice.id).filter(Invoice.invoice_number == number).scalar()


def _share_token(app, invoice_id):
    with session_scope(app) as s:
        return s.get(Invoice, invoice_id).share_token


def test_new_invoice_form_defaults(client):
    login(client)
    r = client.get("/dashboard/invoices/new")
    assert r.status_code == 200
    assert b"INV-0001" in r.data
    assert b"owner@example.com" in r.data


def test_create_invoice_computes_totals(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)

    with session_scope(app) as s:
        inv = s.get(Invoice, invoice_id)
        assert inv.subtotal == Decimal("1335.00")
        assert inv.total == Decimal("1335.00")
        assert inv.balance_due == Decimal("1335.00")
        assert [item["amount"] for item in inv.line_items] == [1255.0, 80.0]
        assert all(item["id"] for item in inv.line_items)

    r = client.get(f"/dashboard/invoices/{invoice_id}")
    assert r.status_code == 200
    assert b"INV-0001" in r.data
    assert b"mailto:ap@acme.test?subject=Invoice%20INV-0001" in r.data


def test_next_invoice_number_follows_count(app, client):
    login(client)
    _create_invoice(app, client)
    r = client.get("/dashboard/invoices/new")
    assert b"INV-0002" in r.data


def test_create_invoice_validation(client):
    login(client)
    r = post(client, "/dashboard/invoices/new", _invoice_form(number="", date="not-a-date"))
    assert r.status_code == 400
    assert b"Invoice number is required." in r.data


def test_create_invoice_rejects_other_users_client(app, client):
    from app.ledgerly.modules.clients.models import Client

    login(client, email=OTHER_EMAIL)
    post(client, "/dashboard/clients/new", {"name": "Their Client"})
    with session_scope(app) as s:
        foreign_id = s.query(Client.id).filter(Client.name == "Their Client").scalar()
    client.post("/auth/logout")

    login(client)
    r = post(client, "/dashboard/invoices/new", _invoice_form(client_id=foreign_id))
    assert r.status_code == 400
    assert b"Client not found." in r.data


def test_edit_invoice_recomputes(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    assert client.get(f"/dashboard/invoices/{invoice_id}/edit").status_code == 200

    form = _invoice_form(item_description=["Consulting"], item_quantity=["2"], item_rate=["100"], item_id=[""])
    r = post(client, f"/dashboard/invoices/{invoice_id}/edit", form)
    assert r.status_code == 302
    with session_scope(app) as s:
        inv = s.get(Invoice, invoice_id)
        assert inv.total == Decimal("200.00")
        assert len(inv.line_items) == 1


def test_mark_paid_zeroes_balance(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    r = post(
        client,
        f"/dashboard/invoices/{invoice_id}/mark-paid",
        {"payment_method": "check", "payment_date": "2024-05-01", "payment_reference": "#1042"},
    )
    assert r.status_code == 302
    with session_scope(app) as s:
        inv = s.get(Invoice, invoice_id)
        assert inv.status == "paid"
        assert inv.balance_due == Decimal("0.00")
        assert inv.payment_method == "check"
        assert inv.payment_reference == "#1042"


def test_mark_paid_requires_method(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    post(client, f"/dashboard/invoices/{invoice_id}/mark-paid", {"payment_method": ""})
    with session_scope(app) as s:
        assert s.get(Invoice, invoice_id).status == "sent"


def test_delete_invoice(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    r = post(client, f"/dashboard/invoices/{invoice_id}/delete")
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.get(Invoice, invoice_id) is None


def test_list_groups_by_year_and_filters(app, client):
    login(client)
    _create_invoice(app, client, "INV-0001")
    _create_invoice(app, client, "INV-0002", date="2023-11-30", status="draft")

    r = client.get("/dashboard/invoices")
    assert r.status_code == 200
    assert b"2024" in r.data and b"2023" in r.data

    r = client.get("/dashboard/invoices?status=draft")
    assert b"INV-0002" in r.data
    assert b"INV-0001" not in r.data

    r = client.get("/dashboard/invoices?date_from=2024-01-01&date_to=2024-12-31")
    assert b"INV-0001" in r.data
    assert b"INV-0002" not in r.data

    r = client.get("/dashboard/invoices?sort=amount&order=asc")
    assert r.status_code == 200


def test_share_and_public_view(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    r = post(client, f"/dashboard/invoices/{invoice_id}/share")
    assert r.status_code == 302
    token = _share_token(app, invoice_id)
    assert token

    # Sharing again keeps the same link.
    post(client, f"/dashboard/invoices/{invoice_id}/share")
    assert _share_token(app, invoice_id) == token

    client.post("/auth/logout")
    anon = app.test_client()
    r = anon.get(f"/invoice/{invoice_id}?token={token}")
    assert r.status_code == 200
    assert b"INV-0001" in r.data
    assert b"Acme Corp" in r.data


def test_public_access_rules(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    other_id = _create_invoice(app, client, "INV-0002")
    post(client, f"/dashboard/invoices/{invoice_id}/share")
    token = _share_token(app, invoice_id)

    anon = app.test_client()
    assert anon.get(f"/invoice/{invoice_id}").status_code == 403
    assert anon.get(f"/invoice/{invoice_id}/pdf").status_code == 403
    assert anon.get(f"/invoice/{invoice_id}?token=wrong").status_code == 404
    # A valid token does not unlock a different invoice.
    assert anon.get(f"/invoice/{other_id}?token={token}").status_code == 404
    assert anon.get(f"/invoice/does-not-exist?token={token}").status_code == 404


def test_unshare_revokes_link(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    post(client, f"/dashboard/invoices/{invoice_id}/share")
    token = _share_token(app, invoice_id)

    post(client, f"/dashboard/invoices/{invoice_id}/unshare")
    assert _share_token(app, invoice_id) is None
    assert app.test_client().get(f"/invoice/{invoice_id}?token={token}").status_code == 404


def test_owner_pdf(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    r = client.get(f"/dashboard/invoices/{invoice_id}/pdf")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.headers["Content-Disposition"] == 'attachment; filename="INV-0001.pdf"'

    with pdfplumber.open(io.BytesIO(r.data)) as pdf:
        text = "\n".join(page.extract_text() or "" for page in pdf.pages)
    assert "INV-0001" in text
    assert "Consulting" in text
    assert "1,335.00" in text


def test_public_pdf(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    post(client, f"/dashboard/invoices/{invoice_id}/share")
    token = _share_token(app, invoice_id)

    r = app.test_client().get(f"/invoice/{invoice_id}/pdf?token={token}")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")


def test_other_user_cannot_touch_invoice(app, client):
    login(client)
    invoice_id = _create_invoice(app, client)
    client.post("/auth/logout")

    login(client, email=OTHER_EMAIL)
    assert client.get(f"/dashboard/invoices/{invoice_id}").status_code == 404
    assert client.get(f"/dashboard/invoices/{invoice_id}/pdf").status_code == 404
    assert post(client, f"/dashboard/invoices/{invoice_id}/mark-paid", {"payment_method": "cash"}).status_code == 404
    assert post(client, f"/dashboard/invoices/{invoice_id}/share").status_code == 404
    assert post(client, f"/dashboard/invoices/{invoice_id}/delete").status_code == 404
    assert b"INV-0001" not in client.get("/dashboard/invoices").data
    with session_scope(app) as s:
        inv = s.get(Invoice, invoice_id)
        assert inv.status == "sent"
        assert inv.share_token is None


def test_oversized_line_items_are_rejected(app, client):
    login(client)
    r = post(client, "/dashboard/invoices/new", _invoice_form(item_quantity=["1e30", "1"]))
    assert r.status_code == 400
    assert b"Invoice total is too large." in r.data

    # Each row fits, the sum does not.
    r = post(
        client,
        "/dashboard/invoices/new",
        _invoice_form(item_quantity=["1", "1"], item_rate=["9000000000", "9000000000"]),
    )
    assert r.status_code == 400
    assert b"Invoice total is too large." in r.data
    with session_scope(app) as s:
        assert s.query(Invoice).count() == 0
