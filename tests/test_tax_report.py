from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from app.ledgerly.modules.household.service import estimate_household_deductions, square_footage_percentage
from app.ledgerly.modules.tax_report.service import calculate_tax_report, parse_period
from tests.conftest import OTHER_EMAIL, login, post


def _invoice(status, total, d=date(2024, 3, 1)):
    return SimpleNamespace(status=status, total=Decimal(total), date=d)


def _expense(amount, category=None, deductible=True, is_return=False):
    return SimpleNamespace(
        deductible_amount=Decimal(amount),
        tax_category=category,
        is_tax_deductible=deductible,
        is_return=is_return,
    )


def _trip(miles, total):
    return SimpleNamespace(miles=Decimal(miles), total=Decimal(total))


def test_tax_report_profit():
    report = calculate_tax_report(
        [_invoice("paid", "1000.00"), _invoice("sent", "500.00")],
        [
            _expense("200.00", "supplies"),
            _expense("50.00", "supplies", is_return=True),
            _expense("999.00", "travel", deductible=False),
            _expense("100.00"),
        ],
        [_trip("100", "67.00")],
        date(2024, 1, 1),
        date(2024, 12, 31),
    )
    assert report.total_income == Decimal("1000.00")
    assert report.paid_invoice_count == 1
    assert report.total_expenses == Decimal("250.00")
    assert report.expense_count == 3
    assert report.total_mileage == Decimal("100")
    assert report.total_mileage_deduction == Decimal("67.00")
    assert report.total_deductions == Decimal("317.00")
    assert report.net_profit == Decimal("683.00")
    assert report.self_employment_tax == Decimal("104.50")
    assert report.estimated_income_tax == Decimal("138.77")
    assert report.total_estimated_tax == Decimal("243.27")

    supplies = report.expenses_by_category["supplies"]
    assert (supplies.count, supplies.total) == (2, Decimal("150.00"))
    uncategorized = report.expenses_by_category["uncategorized"]
    assert (uncategorized.count, uncategorized.total) == (1, Decimal("100.00"))
    assert [name for name, _ in report.categories_by_total()] == ["supplies", "uncategorized"]


def test_tax_report_loss_has_no_tax():
    report = calculate_tax_report(
        [_invoice("paid", "100.00")],
        [_expense("300.00", "equipment")],
        [],
        date(2024, 1, 1),
        date(2024, 12, 31),
    )
    assert report.net_profit == Decimal("-200.00")
    assert report.self_employment_tax == Decimal("0.00")
    assert report.estimated_income_tax == Decimal("0.00")
    assert report.total_estimated_tax == Decimal("0.00")


def test_parse_period():
    today = date(2024, 6, 15)
    assert parse_period({}, today=today) == (date(2024, 1, 1), today)
    assert parse_period({"startDate": "2024-02-01", "endDate": "2024-03-01"}, today=today) == (
        date(2024, 2, 1),
        date(2024, 3, 1),
    )
    assert parse_period({"startDate": "garbage"}, today=today) == (date(2024, 1, 1), today)


def test_square_footage_percentage():
    assert square_footage_percentage(1200, 150) == Decimal("12.5")
    assert square_footage_percentage(3, 1) == Decimal("33.3")
    assert square_footage_percentage(None, 100) is None
    assert square_footage_percentage(0, 100) is None


def test_household_estimate():
    settings = SimpleNamespace(
        total_home_square_feet=1200,
        office_square_feet=150,
        monthly_rent=Decimal("2000.00"),
        rent_business_percentage=Decimal("12.5"),
        monthly_utilities=Decimal("150.00"),
        utilities_business_percentage=Decimal("10"),
        monthly_internet=None,
        internet_business_percentage=Decimal("50"),
    )
    est = estimate_household_deductions(settings)
    assert est.rent == Decimal("250.00")
    assert est.utilities == Decimal("15.00")
    assert est.internet == Decimal("0.00")
    assert est.total == Decimal("265.00")
    assert est.square_footage_percentage == Decimal("12.5")

    empty = estimate_household_deductions(None)
    assert empty.total == Decimal("0.00")
    assert empty.square_footage_percentage is None


# ---------- Routes ----------
def _seed_year(client):
    r = post(
        client,
        "/dashboard/invoices/new",
        {
            "invoice_number": "INV-0001",
            "date": "2024-03-01",
            "status": "paid",
            "bill_to_name": "Acme",
            "item_description": ["Consulting"],
            "item_quantity": ["10"],
            "item_rate": ["100"],
        },
    )
    assert r.status_code == 302
    r = post(
        client,
        "/dashboard/expenses/new",
        {
            "merchant": "Staples",
            "date": "2024-03-02",
            "total": "200.00",
            "is_tax_deductible": "on",
            "business_use_percentage": "100",
            "tax_category": "supplies",
        },
    )
    assert r.status_code == 302


def test_tax_report_page(client):
    login(client)
    _seed_year(client)
    r = client.get("/dashboard/tax-report?startDate=2024-01-01&endDate=2024-12-31")
    assert r.status_code == 200
    assert b"Income Summary" in r.data
    assert b"Estimated Tax Liability" in r.data
    assert b"1,000.00" in r.data
    assert b"800.00" in r.data


def test_tax_report_is_per_user(client):
    login(client)
    _seed_year(client)
    client.post("/auth/logout")
    login(client, email=OTHER_EMAIL)
    r = client.get("/dashboard/tax-report?startDate=2024-01-01&endDate=2024-12-31")
    assert r.status_code == 200
    assert b"1,000.00" not in r.data


def test_tax_report_pdf(client):
    login(client)
    _seed_year(client)
    r = client.get("/dashboard/tax-report/pdf?startDate=2024-01-01&endDate=2024-12-31")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")
    assert 'filename="tax-report-2024-01-01-to-2024-12-31.pdf"' in r.headers["Content-Disposition"]
