"""Tests for money arithmetic and display mappings in the service layer."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.ledgerly.modules.clients.service import client_status_badge
from app.ledgerly.modules.expenses.service import (
    build_receipt_storage_key,
    calculate_deductible_amount,
    tax_category_label,
    validate_expense_payload,
)
from app.ledgerly.modules.invoices.service import (
    calculate_invoice_totals,
    group_invoices_by_year,
    invoice_status_badge,
    normalize_line_items,
    payment_method_label,
    validate_invoice_payload,
)
from app.ledgerly.modules.mileage.service import calculate_mileage_deduction, mileage_totals
from app.ledgerly.utils import MAX_AMOUNT, AmountOutOfRange, money, parse_decimal


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money(None) == Decimal("0.00")
    assert money(10) == Decimal("10.00")


def test_parse_decimal_accepts_formatted_values():
    assert parse_decimal("$1,250.50") == Decimal("1250.50")
    assert parse_decimal("  ", default=Decimal("1")) == Decimal("1")
    with pytest.raises(ValueError):
        parse_decimal("twelve")


def test_parse_decimal_rejects_amounts_beyond_money_columns():
    assert parse_decimal("9,999,999,999.99") == MAX_AMOUNT
    for raw in ("1e30", "10000000000", "-10000000000"):
        with pytest.raises(AmountOutOfRange):
            parse_decimal(raw)
    with pytest.raises(AmountOutOfRange):
        parse_decimal("100", max_abs=Decimal("99.99"))


def test_normalize_line_items_rejects_oversized_amount():
    with pytest.raises(AmountOutOfRange):
        normalize_line_items([{"description": "Huge", "quantity": "1000000000", "rate": "1000"}])


def test_normalize_line_items_computes_amounts():
    items = normalize_line_items(
        [
            {"description": "Design", "quantity": "1.5", "rate": "33.33"},
            {"description": "", "quantity": "", "rate": ""},
            {"description": "Hosting", "quantity": None, "rate": "20"},
        ]
    )
    assert len(items) == 2
    assert items[0]["amount"] == 50.0
    assert items[1]["quantity"] == 1.0
    assert items[1]["amount"] == 20.0
    assert all(item["id"] for item in items)


def test_normalize_line_items_keeps_existing_ids():
    items = normalize_line_items([{"id": "abc", "description": "Work", "quantity": "2", "rate": "10"}])
    assert items[0]["id"] == "abc"


def test_normalize_line_items_rejects_non_numeric():
    with pytest.raises(ValueError):
        normalize_line_items([{"description": "Work", "quantity": "two", "rate": "10"}])


def test_invoice_totals_sum_rounded_amounts():
    subtotal, total = calculate_invoice_totals([{"amount": 10.10}, {"amount": 5.255}])
    assert subtotal == Decimal("15.36")
    assert total == subtotal
    assert calculate_invoice_totals([]) == (Decimal("0.00"), Decimal("0.00"))


def test_validate_invoice_payload():
    assert validate_invoice_payload({"invoice_number": "INV-0001", "date": "2024-01-05"}) == []
    errors = validate_invoice_payload({"invoice_number": "", "date": "05/01/2024", "status": "lost"})
    assert "Invoice number is required." in errors
    assert "Invoice date must be YYYY-MM-DD." in errors
    assert any(e.startswith("Invalid status") for e in errors)


def test_invoice_status_badges():
    assert invoice_status_badge("paid") == ("success", "Paid")
    assert invoice_status_badge("sent") == ("default", "Sent")
    assert invoice_status_badge("draft") == ("secondary", "Draft")
    assert invoice_status_badge("overdue") == ("destructive", "Overdue")
    assert invoice_status_badge("disputed") == ("outline", "disputed")


def test_client_status_badges():
    assert client_status_badge("lead") == ("secondary", "Lead")
    assert client_status_badge("on_hold") == ("secondary", "On Hold")
    assert client_status_badge("inactive") == ("destructive", "Inactive")
    assert client_status_badge("mystery") == ("default", "Active")
    assert client_status_badge(None) == ("default", "Active")


def test_payment_method_label():
    assert payment_method_label("direct_deposit") == "Direct Deposit"
    assert payment_method_label("barter") == "barter"
    assert payment_method_label(None) == "—"


def test_group_invoices_by_year_newest_first():
    invoices = [
        SimpleNamespace(date=date(2023, 5, 1), total=Decimal("100.00")),
        SimpleNamespace(date=date(2024, 2, 1), total=Decimal("50.00")),
        SimpleNamespace(date=date(2023, 1, 1), total=Decimal("25.50")),
    ]
    groups = group_invoices_by_year(invoices)
    assert [g[0] for g in groups] == [2024, 2023]
    assert groups[1][2] == Decimal("125.50")
    assert [i.total for i in groups[1][1]] == [Decimal("100.00"), Decimal("25.50")]


def test_deductible_amount():
    assert calculate_deductible_amount(Decimal("200.00"), Decimal("50")) == Decimal("100.00")
    assert calculate_deductible_amount(Decimal("33.33"), Decimal("33.3")) == Decimal("11.10")
    assert calculate_deductible_amount(Decimal("80.00"), None) == Decimal("80.00")


def test_validate_expense_payload():
    ok = {"merchant": "Staples", "date": "2024-02-01", "total": "12.50", "business_use_percentage": "100"}
    assert validate_expense_payload(ok) == []
    errors = validate_expense_payload({**ok, "business_use_percentage": "150", "tax_category": "yachts"})
    assert "Business use percentage must be between 0 and 100." in errors
    assert "Invalid tax category." in errors
    assert "Merchant is required." in validate_expense_payload({**ok, "merchant": " "})


def test_tax_category_label():
    assert tax_category_label("vehicle") == "Vehicle Expenses"
    assert tax_category_label(None) == "Uncategorized"


def test_receipt_key_is_under_user_prefix():
    key = build_receipt_storage_key("user-1", "exp-1", "my receipt.pdf", date(2024, 1, 2))
    assert key == "user-1/exp-1/2024-01-02-my_receipt.pdf"


def test_mileage_deduction():
    assert calculate_mileage_deduction(Decimal("100"), Decimal("0.67")) == Decimal("67.00")
    assert calculate_mileage_deduction(Decimal("12.5"), Decimal("0.67")) == Decimal("8.38")
    assert calculate_mileage_deduction(None, Decimal("0.67")) == Decimal("0.00")


def test_mileage_totals():
    records = [
        SimpleNamespace(miles=Decimal("10.5"), total=Decimal("7.04")),
        SimpleNamespace(miles=Decimal("20"), total=Decimal("13.40")),
    ]
    assert mileage_totals(records) == (Decimal("30.5"), Decimal("20.44"))
