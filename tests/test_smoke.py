import subprocess
import sys
from pathlib import Path

import pytest

from tests.conftest import OWNER_EMAIL, PASSWORD, login


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_landing_page_for_anonymous(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Sign in" in r.data


def test_dashboard_requires_login(client):
    r = client.get("/dashboard")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_login_and_dashboard(client):
    r = login(client)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Dashboard" in r.data
    assert OWNER_EMAIL.encode() in r.data


def test_login_wrong_password(client):
    r = client.post("/auth/login", data={"email": OWNER_EMAIL, "password": "nope"}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Invalid credentials" in r.data

    r = client.get("/dashboard")
    assert r.status_code == 302


def test_login_redirects_to_safe_next(client):
    r = client.post(
        "/auth/login",
        data={"email": OWNER_EMAIL, "password": PASSWORD, "next": "/dashboard/clients"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard/clients")


def test_login_ignores_external_next(client):
    r = client.post(
        "/auth/login",
        data={"email": OWNER_EMAIL, "password": PASSWORD, "next": "https://evil.example/"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "evil.example" not in r.headers["Location"]


def test_logout(client):
    login(client)
    r = client.post("/auth/logout", follow_redirects=False)
    assert r.status_code == 302
    r = client.get("/dashboard")
    assert r.status_code == 302


def test_signup_creates_account(client):
    r = client.post(
        "/auth/signup",
        data={"email": "new@example.com", "password": "longenough", "full_name": "New Person"},
        follow_redirects=False,
    )
    assert r.status_code == 302

    r = client.get("/dashboard/settings")
    assert r.status_code == 200
    assert b"new@example.com" in r.data


def test_signup_rejects_short_password(client):
    r = client.post("/auth/signup", data={"email": "short@example.com", "password": "short"})
    assert r.status_code == 400


def test_signup_rejects_duplicate_email(client):
    r = client.post("/auth/signup", data={"email": OWNER_EMAIL, "password": "longenough"})
    assert r.status_code == 400


def test_post_without_csrf_rejected(client):
    login(client)
    r = client.post("/dashboard/clients/new", data={"name": "No Token"})
    assert r.status_code == 400


def test_unknown_page_404(client):
    login(client)
    r = client.get("/dashboard/clients/does-not-exist")
    assert r.status_code == 404


def test_json_404_for_json_clients(client):
    login(client)
    r = client.get("/dashboard/invoices/missing", headers={"Accept": "application/json"})
    assert r.status_code == 404
    assert r.json["error"] == "Not found"


@pytest.mark.parametrize(
    "module",
    [
        "app.ledgerly",
        "app.ledgerly.routes",
        "app.ledgerly.models",
        "app.ledgerly.modules.clients.models",
        "app.ledgerly.modules.invoices.service",
    ],
)
def test_module_imports_in_fresh_interpreter(module):
    # Import order matters for the model registry, so each module gets its own process.
    root = Path(__file__).resolve().parents[1]
    r = subprocess.run([sys.executable, "-c", f"import {module}"], cwd=root, capture_output=True, text=True)
    assert r.returncode == 0, r.stderr
