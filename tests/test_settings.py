"""Tests for business settings, logo upload and household settings."""
import io
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from app.ledgerly.db import session_scope
from app.ledgerly.models import BusinessSettings, User
from app.ledgerly.modules.household.models import HouseholdSettings
from app.ledgerly.modules.settings.service import build_logo_storage_key, logo_content_type
from tests.conftest import OWNER_EMAIL, login, post


def _owner_id(app):
    with session_scope(app) as s:
        return s.query(User.id).filter(User.email == OWNER_EMAIL).scalar()


def test_business_settings_page(client):
    login(client)
    r = client.get("/dashboard/settings")
    assert r.status_code == 200
    assert b"Business settings" in r.data


def test_save_business_settings(app, client):
    login(client)
    r = post(
        client,
        "/dashboard/settings",
        {
            "business_name": "Olive Design Studio",
            "business_email": "hello@olive.test",
            "default_email_subject": "Your invoice {invoice_number}",
            "default_invoice_note": "Thanks for your business!",
        },
    )
    assert r.status_code == 302
    with session_scope(app) as s:
        bs = s.query(BusinessSettings).filter(BusinessSettings.user_id == _owner_id(app)).one()
        assert bs.business_name == "Olive Design Studio"
        assert bs.default_invoice_note == "Thanks for your business!"

    r = client.get("/dashboard/invoices/new")
    assert b"Olive Design Studio" in r.data
    assert b"Thanks for your business!" in r.data


def test_business_settings_rejects_bad_email(app, client):
    login(client)
    post(client, "/dashboard/settings", {"business_name": "Nope", "business_email": "not-an-email"})
    with session_scope(app) as s:
        bs = s.query(BusinessSettings).filter(BusinessSettings.user_id == _owner_id(app)).one()
        assert bs.business_name is None


def test_email_subject_uses_settings_template(app, client):
    login(client)
    post(client, "/dashboard/settings", {"default_email_subject": "Your invoice {invoice_number}"})
    post(
        client,
        "/dashboard/invoices/new",
        {
            "invoice_number": "INV-0001",
            "date": "2024-01-15",
            "bill_to_email": "ap@acme.test",
            "item_description": ["Work"],
            "item_quantity": ["1"],
            "item_rate": ["10"],
        },
    )
    from app.ledgerly.modules.invoices.models import Invoice

    with session_scope(app) as s:
        invoice_id = s.query(Invoice.id).scalar()
    r = client.get(f"/dashboard/invoices/{invoice_id}")
    assert b"subject=Your%20invoice%20INV-0001" in r.data


def test_logo_upload_is_public(app, client):
    login(client)
    r = post(
        client,
        "/dashboard/settings/logo",
        {"logo": (io.BytesIO(b"\x89PNG logo"), "logo.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 302

    owner_id = _owner_id(app)
    with session_scope(app) as s:
        logo_url = s.query(BusinessSettings.logo_url).filter(BusinessSettings.user_id == owner_id).scalar()
    assert logo_url.startswith(f"/storage/logos/{owner_id}/logo-")
    assert logo_url.endswith("-logo.png")

    r = app.test_client().get(logo_url)
    assert r.status_code == 200
    assert r.data == b"\x89PNG logo"
    assert r.mimetype == "image/png"
    assert r.headers["X-Content-Type-Options"] == "nosniff"


def test_logo_upload_rejects_non_image(app, client):
    login(client)
    post(
        client,
        "/dashboard/settings/logo",
        {"logo": (io.BytesIO(b"%PDF"), "logo.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    with session_scope(app) as s:
        assert s.query(BusinessSettings.logo_url).filter(BusinessSettings.user_id == _owner_id(app)).scalar() is None


# ---------- Household ----------
def test_household_upsert_and_estimate(app, client):
    login(client)
    r = client.get("/dashboard/household")
    assert r.status_code == 200
    assert b"Home office" in r.data

    payload = {
        "monthly_rent": "2000",
        "rent_business_percentage": "12.5",
        "monthly_utilities": "150",
        "utilities_business_percentage": "10",
        "monthly_internet": "",
        "internet_business_percentage": "50",
        "total_home_square_feet": "1200",
        "office_square_feet": "150",
    }
    r = post(client, "/dashboard/household", payload)
    assert r.status_code == 302

    r = client.get("/dashboard/household")
    assert b"Office is 12.5% of the home." in r.data
    assert b"$265.00" in r.data

    # A second save updates the same row.
    post(client, "/dashboard/household", {**payload, "rent_business_percentage": "20"})
    with session_scope(app) as s:
        rows = s.query(HouseholdSettings).all()
        assert len(rows) == 1
        assert rows[0].rent_business_percentage == Decimal("20")


def test_household_rejects_out_of_range_percentage(app, client):
    login(client)
    post(client, "/dashboard/household", {"rent_business_percentage": "120"})
    with session_scope(app) as s:
        assert s.query(HouseholdSettings).count() == 0
    r = client.get("/dashboard/household")
    assert b"Rent percentage must be between 0 and 100." in r.data


def test_logo_upload_rejects_html_declared_as_png(app, client):
    login(client)
    for name, mimetype in [("evil.html", "image/png"), ("evil.svg", "image/svg+xml"), ("logo.png", "text/html")]:
        post(
            client,
            "/dashboard/settings/logo",
            {"logo": (io.BytesIO(b"<script>alert(1)</script>"), name, mimetype)},
            content_type="multipart/form-data",
        )
    with session_scope(app) as s:
        assert s.query(BusinessSettings.logo_url).filter(BusinessSettings.user_id == _owner_id(app)).scalar() is None
    assert not (Path(app.config["STORAGE_ROOT"]) / "logos").exists()


def test_public_storage_only_serves_image_files(app, client):
    owner_id = _owner_id(app)
    planted = Path(app.config["STORAGE_ROOT"]) / "logos" / owner_id / "logo-2024-01-01-evil.html"
    planted.parent.mkdir(parents=True)
    planted.write_bytes(b"<script>alert(1)</script>")

    r = client.get(f"/storage/logos/{owner_id}/logo-2024-01-01-evil.html")
    assert r.status_code == 404


def test_build_logo_storage_key():
    assert build_logo_storage_key("u1", "My Logo.PNG", date(2024, 1, 2)) == "u1/logo-2024-01-02-My_Logo.PNG"
    assert build_logo_storage_key("u1", "ロゴ.jpg", date(2024, 1, 2)) == "u1/logo-2024-01-02-logo.jpg"
    with pytest.raises(ValueError):
        build_logo_storage_key("u1", "evil.html", date(2024, 1, 2))
    assert logo_content_type("a.webp") == "image/webp"
    assert logo_content_type("a.svg") is None


def test_household_rejects_oversized_values(app, client):
    login(client)
    post(client, "/dashboard/household", {"monthly_rent": "1e30", "office_square_feet": "99999999999"})
    with session_scope(app) as s:
        assert s.query(HouseholdSettings).count() == 0
    r = client.get("/dashboard/household")
    assert b"Monthly rent is too large." in r.data
    assert b"Square footage is too large." in r.data
