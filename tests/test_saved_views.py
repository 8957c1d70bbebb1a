"""Tests for saved views on list pages and the dashboard overview."""
import json

from app.ledgerly.db import session_scope
from app.ledgerly.modules.saved_views.models import SavedView
from tests.conftest import OTHER_EMAIL, login, post

STATE = json.dumps({"filters": {"status": ["paid"]}, "sort": {"sortBy": "amount", "sortOrder": "asc"}})


def _save(client, name="Paid invoices", url="/dashboard/invoices", table="invoices", **kw):
    return post(
        client,
        url,
        {"intent": "save_view", "view_name": name, "table_name": table, "view_state": STATE},
        **kw,
    )


def test_save_view_and_list_it(app, client):
    login(client)
    r = _save(client)
    assert r.status_code == 302

    with session_scope(app) as s:
        view = s.query(SavedView).one()
        assert view.table_name == "invoices"
        assert view.view_state == {"filters": {"status": ["paid"]}, "sort": {"sortBy": "amount", "sortOrder": "asc"}}

    r = client.get("/dashboard/invoices")
    assert b"Paid invoices" in r.data
    assert b"Sorted by amount (ascending)" in r.data


def test_save_view_json_caller(client):
    login(client)
    r = _save(client, headers={"Accept": "application/json"})
    assert r.status_code == 200
    assert r.json == {"success": True}


def test_duplicate_and_empty_names_rejected(app, client):
    login(client)
    _save(client)
    r = _save(client, headers={"Accept": "application/json"})
    assert r.status_code == 400
    assert "already exists" in r.json["error"]

    r = _save(client, name="  ", headers={"Accept": "application/json"})
    assert r.status_code == 400
    assert r.json["error"] == "View name cannot be empty"

    r = _save(client, name="x" * 51, headers={"Accept": "application/json"})
    assert r.status_code == 400

    with session_scope(app) as s:
        assert s.query(SavedView).count() == 1


def test_same_name_allowed_on_other_table_and_user(app, client):
    login(client)
    _save(client)
    assert _save(client, url="/dashboard/expenses", table="expenses").status_code == 302
    client.post("/auth/logout")

    login(client, email=OTHER_EMAIL)
    assert _save(client).status_code == 302
    assert b"Paid invoices" in client.get("/dashboard/invoices").data
    with session_scope(app) as s:
        assert s.query(SavedView).count() == 3


def test_invalid_state_is_stored_as_default(app, client):
    login(client)
    post(
        client,
        "/dashboard/clients",
        {"intent": "save_view", "view_name": "Broken", "table_name": "clients", "view_state": "{oops"},
    )
    with session_scope(app) as s:
        view = s.query(SavedView).one()
        assert view.view_state == {"filters": {}, "sort": {"sortBy": None, "sortOrder": "desc"}}
    assert b"No filters applied" in client.get("/dashboard/clients").data


def test_delete_view(app, client):
    login(client)
    _save(client)
    with session_scope(app) as s:
        view_id = s.query(SavedView.id).scalar()

    r = post(client, "/dashboard/invoices", {"intent": "delete_view", "view_id": view_id})
    assert r.status_code == 302
    with session_scope(app) as s:
        assert s.query(SavedView).count() == 0


def test_cannot_delete_other_users_view(app, client):
    login(client)
    _save(client)
    with session_scope(app) as s:
        view_id = s.query(SavedView.id).scalar()
    client.post("/auth/logout")

    login(client, email=OTHER_EMAIL)
    r = post(
        client,
        "/dashboard/invoices",
        {"intent": "delete_view", "view_id": view_id},
        headers={"Accept": "application/json"},
    )
    assert r.status_code == 404
    assert b"Paid invoices" not in client.get("/dashboard/invoices").data
    with session_scope(app) as s:
        assert s.query(SavedView).count() == 1


def test_list_post_without_intent_is_400(client):
    login(client)
    assert post(client, "/dashboard/invoices", {}).status_code == 400


def test_views_on_every_list_page(client):
    login(client)
    for url, table in [
        ("/dashboard/clients", "clients"),
        ("/dashboard/expenses", "expenses"),
        ("/dashboard/mileage", "mileage"),
        ("/dashboard/templates", "line_item_templates"),
    ]:
        assert _save(client, name=f"Mine {table}", url=url, table=table).status_code == 302
        assert f"Mine {table}".encode() in client.get(url).data


# ---------- Dashboard ----------
def test_dashboard_overview(client):
    login(client)
    post(
        client,
        "/dashboard/invoices/new",
        {
            "invoice_number": "INV-0001",
            "date": "2024-01-15",
            "status": "sent",
            "item_description": ["Work"],
            "item_quantity": ["3"],
            "item_rate": ["100"],
        },
    )
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Dashboard" in r.data
    assert b"owner@example.com" in r.data
    assert b"INV-0001" in r.data
    assert b"$300.00" in r.data


def test_posted_table_name_cannot_redirect_view(app, client):
    login(client)
    assert _save(client, name="Sneaky", url="/dashboard/invoices", table="expenses").status_code == 302
    assert _save(client, name="Made up", url="/dashboard/mileage", table="not_a_table").status_code == 302

    with session_scope(app) as s:
        tables = dict(s.query(SavedView.name, SavedView.table_name).all())
    assert tables == {"Sneaky": "invoices", "Made up": "mileage"}
    assert b"Sneaky" in client.get("/dashboard/invoices").data
    assert b"Sneaky" not in client.get("/dashboard/expenses").data
