"""
Tax-report arithmetic over already-fetched rows.

All amounts are Decimal and rounded half-up to cents at the end of each step.
The rates are fixed and deliberately simple; the report says so in its disclaimer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from app.ledgerly.utils import money

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.expenses.models import Expense
    from app.ledgerly.modules.invoices.models import Invoice
    from app.ledgerly.modules.mileage.models import MileageRecord


SELF_EMPLOYMENT_TAX_RATE = Decimal("0.153")
INCOME_TAX_RATE = Decimal("0.22")
UNCATEGORIZED = "uncategorized"


@dataclass
class CategoryTotal:
    count: int = 0
    total: Decimal = Decimal("0.00")


@dataclass
class TaxReport:
    start_date: date
    end_date: date
    total_income: Decimal
    total_expenses: Decimal
    total_mileage: Decimal
    total_mileage_deduction: Decimal
    total_deductions: Decimal
    net_profit: Decimal
    self_employment_tax: Decimal
    estimated_income_tax: Decimal
    total_estimated_tax: Decimal
    expense_count: int
    mileage_record_count: int
    paid_invoice_count: int
    expenses_by_category: dict[str, CategoryTotal] = field(default_factory=dict)

    def categories_by_total(self) -> list[tuple[str, CategoryTotal]]:
        """Largest category first."""
        return sorted(self.expenses_by_category.items(), key=lambda kv: kv[1].total, reverse=True)


def default_period(today: date | None = None) -> tuple[date, date]:
    """1 January of the current year through today."""
    today = today or date.today()
    return date(today.year, 1, 1), today


def parse_period(args, today: date | None = None) -> tuple[date, date]:
    """`startDate` / `endDate` query params (YYYY-MM-DD); missing or malformed values use the default period."""
    start, end = default_period(today)
    raw_start = (args.get("startDate") or "").strip()
    raw_end = (args.get("endDate") or "").strip()
    try:
        if raw_start:
            start = date.fromisoformat(raw_start)
        if raw_end:
            end = date.fromisoformat(raw_end)
    except ValueError:
        return default_period(today)
    return start, end


def _signed_deductible(expense: "Expense") -> Decimal:
    amount = money(expense.deductible_amount)
    return -amount if expense.is_return else amount


def calculate_tax_report(
    invoices: Iterable["Invoice"],
    expenses: Iterable["Expense"],
    mileage: Iterable["MileageRecord"],
    start_date: date,
    end_date: date,
) -> TaxReport:
    paid = [inv for inv in invoices if inv.status == "paid"]
    total_income = money(sum((money(inv.total) for inv in paid), Decimal("0")))

    deductible = [e for e in expenses if e.is_tax_deductible]
    by_category: dict[str, CategoryTotal] = {}
    total_expenses = Decimal("0")
    for e in deductible:
        amount = _signed_deductible(e)
        total_expenses += amount
        bucket = by_category.setdefault(e.tax_category or UNCATEGORIZED, CategoryTotal())
        bucket.count += 1
        bucket.total = money(bucket.total + amount)
    total_expenses = money(total_expenses)

    trips = list(mileage)
    total_miles = sum((m.miles or Decimal("0") for m in trips), Decimal("0"))
    total_mileage_deduction = money(sum((money(m.total) for m in trips), Decimal("0")))

    total_deductions = money(total_expenses + total_mileage_deduction)
    net_profit = money(total_income - total_deductions)

    if net_profit > 0:
        se_tax = money(net_profit * SELF_EMPLOYMENT_TAX_RATE)
        income_tax = money((net_profit - se_tax / 2) * INCOME_TAX_RATE)
    else:
        se_tax = Decimal("0.00")
        income_tax = Decimal("0.00")

    return TaxReport(
        start_date=start_date,
        end_date=end_date,
        total_income=total_income,
        total_expenses=total_expenses,
        total_mileage=total_miles,
        total_mileage_deduction=total_mileage_deduction,
        total_deductions=total_deductions,
        net_profit=net_profit,
        self_employment_tax=se_tax,
        estimated_income_tax=income_tax,
        total_estimated_tax=money(se_tax + income_tax),
        expense_count=len(deductible),
        mileage_record_count=len(trips),
        paid_invoice_count=len(paid),
        expenses_by_category=by_category,
    )


def load_tax_report(s: "Session", user: "User", start_date: date, end_date: date) -> TaxReport:
    """Fetch the user's rows in the period and compute the report."""
    from app.ledgerly.modules.expenses.models import Expense
    from app.ledgerly.modules.invoices.models import Invoice
    from app.ledgerly.modules.mileage.models import MileageRecord

    def _in_period(model):
        return (
            s.query(model)
            .filter(model.user_id == user.id)
            .filter(model.date >= start_date)
            .filter(model.date <= end_date)
            .all()
        )

    return calculate_tax_report(
        _in_period(Invoice),
        _in_period(Expense),
        _in_period(MileageRecord),
        start_date,
        end_date,
    )
