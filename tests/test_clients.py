"""Tests for the clients module."""
import pytest

from app.ledgerly.db import session_scope
from app.ledgerly.models import User
from app.ledgerly.modules.clients.models import Client
from tests.conftest import OTHER_EMAIL, OWNER_EMAIL, login, post


def _client_id(app, name):
    with session_scope(app) as s:
        return s.query(Client.id).filter(Client.name == name).scalar()


def _create(client, name, **extra):
    data = {"name": name, "status": "active"}
    data.update(extra)
    return post(client, "/dashboard/clients/new", data)


def test_clients_require_login(client):
    r = client.get("/dashboard/clients")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_create_client(app, client):
    login(client)
    r = _create(client, "Acme Corp", email="billing@acme.test", contact_person="Wile E.")
    assert r.status_code == 302

    with session_scope(app) as s:
        c = s.query(Client).filter(Client.name == "Acme Corp").one()
        owner = s.query(User).filter(User.email == OWNER_EMAIL).one()
        assert c.user_id == owner.id
        assert c.email == "billing@acme.test"
        assert c.is_active is True
        assert r.headers["Location"].endswith(f"/dashboard/clients/{c.id}")

    r = client.get(r.headers["Location"])
    assert r.status_code == 200
    assert b"Acme Corp" in r.data


def test_create_client_requires_name(client):
    login(client)
    r = _create(client, "  ")
    assert r.status_code == 400
    assert b"Client name is required." in r.data


def test_create_client_rejects_unknown_status(client):
    login(client)
    r = _create(client, "Acme", status="vip")
    assert r.status_code == 400


def test_edit_client_to_archived_clears_active(app, client):
    login(client)
    _create(client, "Beta LLC")
    cid = _client_id(app, "Beta LLC")

    r = client.get(f"/dashboard/clients/{cid}/edit")
    assert r.status_code == 200

    r = post(client, f"/dashboard/clients/{cid}/edit", {"name": "Beta LLC", "status": "archived"})
    assert r.status_code == 302
    with session_scope(app) as s:
        c = s.get(Client, cid)
        assert c.status == "archived"
        assert c.is_active is False


def test_delete_client(app, client):
    login(client)
    _create(client, "Gamma")
    cid = _client_id(app, "Gamma")
    r = post(client, f"/dashboard/clients/{cid}/delete")
    assert r.status_code == 302
    assert _client_id(app, "Gamma") is None


def test_list_search_and_status_filter(client):
    login(client)
    _create(client, "Acme Corp")
    _create(client, "Zenith Ltd", status="lead")

    r = client.get("/dashboard/clients")
    assert r.status_code == 200
    assert b"Acme Corp" in r.data and b"Zenith Ltd" in r.data

    r = client.get("/dashboard/clients?q=zen")
    assert b"<mark>Zen</mark>ith Ltd" in r.data
    assert b"Acme Corp" not in r.data

    r = client.get("/dashboard/clients?status=lead")
    assert b"Zenith Ltd" in r.data
    assert b"Acme Corp" not in r.data


def test_list_tolerates_unknown_sort_and_bad_page(client):
    login(client)
    _create(client, "Acme Corp")
    r = client.get("/dashboard/clients?sort=bogus&order=sideways&page=999&limit=abc")
    assert r.status_code == 200
    assert b"Acme Corp" in r.data


def test_list_paginates(client):
    login(client)
    for i in range(12):
        _create(client, f"Client {i:02d}")
    r = client.get("/dashboard/clients?limit=10&sort=name&order=asc")
    assert b"Client 09" in r.data
    assert b"Client 10" not in r.data
    r = client.get("/dashboard/clients?limit=10&page=2&sort=name&order=asc")
    assert b"Client 10" in r.data
    assert b"Client 00" not in r.data


def test_other_users_client_is_404(app, client):
    login(client)
    _create(client, "Private Co")
    cid = _client_id(app, "Private Co")
    client.post("/auth/logout")

    login(client, email=OTHER_EMAIL)
    assert client.get(f"/dashboard/clients/{cid}").status_code == 404
    assert client.get(f"/dashboard/clients/{cid}/edit").status_code == 404
    assert post(client, f"/dashboard/clients/{cid}/delete").status_code == 404
    assert b"Private Co" not in client.get("/dashboard/clients").data
    assert _client_id(app, "Private Co") == cid


@pytest.mark.parametrize(
    "url",
    ["/dashboard/clients", "/dashboard/invoices", "/dashboard/expenses", "/dashboard/mileage", "/dashboard/templates"],
)
def test_list_pages_tolerate_huge_page_and_limit(client, url):
    login(client)
    r = client.get(f"{url}?limit=100000000000000000000&page=100000000000000000000")
    assert r.status_code == 200
