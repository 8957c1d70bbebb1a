from __future__ import annotations

import hashlib
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from werkzeug.utils import secure_filename

from app.ledgerly.audit import record_event
from app.ledgerly.utils import AmountOutOfRange, clean, money, parse_date, parse_decimal

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.expenses.models import Expense
    from app.ledgerly.storage import Storage


EXPENSE_CATEGORIES = {
    "office": "Office",
    "software": "Software",
    "travel": "Travel",
    "meals": "Meals",
    "equipment": "Equipment",
    "utilities": "Utilities",
    "marketing": "Marketing",
    "professional_services": "Professional Services",
    "other": "Other",
}

TAX_CATEGORIES = {
    "rent": "Rent/Mortgage",
    "utilities": "Utilities",
    "internet": "Internet",
    "supplies": "Supplies",
    "equipment": "Equipment",
    "meals": "Meals & Entertainment",
    "travel": "Travel",
    "vehicle": "Vehicle Expenses",
    "professional_services": "Professional Services",
    "marketing": "Marketing & Advertising",
    "insurance": "Insurance",
    "other": "Other",
    "uncategorized": "Uncategorized",
}

RECEIPT_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic", "application/pdf")


def tax_category_label(category: str | None) -> str:
    key = category or "uncategorized"
    return TAX_CATEGORIES.get(key, key)


def calculate_deductible_amount(total: Decimal | None, business_use_percentage: Decimal | None) -> Decimal:
    """total × percentage / 100, half-up to cents."""
    pct = Decimal("100") if business_use_percentage is None else business_use_percentage
    return money(money(total) * pct / Decimal("100"))


def _bool(raw) -> bool:
    return str(raw or "").strip().lower() in ("1", "true", "on", "yes")


def validate_expense_payload(payload: dict) -> list[str]:
    """Validate expense creation/update payload. Returns list of errors."""
    errors = []
    if not (payload.get("merchant") or "").strip():
        errors.append("Merchant is required.")
    try:
        if parse_date(payload.get("date")) is None:
            errors.append("Date is required.")
    except ValueError:
        errors.append("Date must be YYYY-MM-DD.")
    try:
        total = parse_decimal(payload.get("total"))
        if total is None:
            errors.append("Total is required.")
        elif total < 0:
            errors.append("Total cannot be negative.")
    except AmountOutOfRange:
        errors.append("Total is too large.")
    except ValueError:
        errors.append("Total must be a number.")
    try:
        parse_decimal(payload.get("tax"))
    except AmountOutOfRange:
        errors.append("Tax is too large.")
    except ValueError:
        errors.append("Tax must be a number.")
    try:
        pct = parse_decimal(payload.get("business_use_percentage"))
        if pct is not None and not (Decimal("0") <= pct <= Decimal("100")):
            errors.append("Business use percentage must be between 0 and 100.")
    except ValueError:
        errors.append("Business use percentage must be a number.")
    tax_category = (payload.get("tax_category") or "").strip()
    if tax_category and tax_category not in TAX_CATEGORIES:
        errors.append("Invalid tax category.")
    return errors


def _values(payload: dict) -> dict:
    total = money(parse_decimal(payload.get("total")))
    tax = parse_decimal(payload.get("tax"))
    pct = parse_decimal(payload.get("business_use_percentage"), default=Decimal("100"))
    is_return = _bool(payload.get("is_return"))
    return {
        "merchant": (payload.get("merchant") or "").strip(),
        "category": clean(payload.get("category")),
        "date": parse_date(payload.get("date")),
        "total": total,
        "tax": money(tax) if tax is not None else None,
        "description": clean(payload.get("description")),
        "notes": clean(payload.get("notes")),
        "is_tax_deductible": _bool(payload.get("is_tax_deductible")),
        "business_use_percentage": pct,
        "tax_category": clean(payload.get("tax_category")),
        "deductible_amount": calculate_deductible_amount(total, pct),
        "is_return": is_return,
        "original_expense_id": clean(payload.get("original_expense_id")) if is_return else None,
    }


def create_expense(s: "Session", payload: dict, user: "User") -> "Expense":
    from app.ledgerly.modules.expenses.models import Expense

    now = datetime.utcnow()
    expense = Expense(user_id=user.id, created_at=now, updated_at=now, **_values(payload))
    s.add(expense)
    s.flush()

    record_event(
        s,
        actor=user,
        action="expense.create",
        entity_type="Expense",
        entity_id=expense.id,
        metadata={"merchant": expense.merchant, "total": expense.total, "is_return": expense.is_return},
    )
    return expense


def update_expense(s: "Session", expense: "Expense", payload: dict, user: "User") -> "Expense":
    changes = {}
    for field, new in _values(payload).items():
        old = getattr(expense, field)
        if old != new:
            changes[field] = {"old": old, "new": new}
            setattr(expense, field, new)
    expense.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="expense.edit",
        entity_type="Expense",
        entity_id=expense.id,
        metadata={"merchant": expense.merchant, "changes": changes},
    )
    return expense


def delete_expense(s: "Session", expense: "Expense", user: "User", storage: "Storage", bucket: str) -> None:
    if expense.receipt_url:
        storage.delete_for_user(bucket, user.id, expense.receipt_url)
    record_event(
        s,
        actor=user,
        action="expense.delete",
        entity_type="Expense",
        entity_id=expense.id,
        metadata={"merchant": expense.merchant, "total": expense.total},
    )
    s.delete(expense)


# ---------- Receipts ----------
def build_receipt_storage_key(user_id: str, expense_id: str, filename: str, upload_date: date | None = None) -> str:
    """Receipts live under the owner's prefix: <user_id>/<expense_id>/<date>-<filename>."""
    if upload_date is None:
        upload_date = date.today()
    safe_filename = secure_filename(filename) or "receipt.bin"
    return f"{user_id}/{expense_id}/{upload_date.isoformat()}-{safe_filename}"


def upload_receipt(
    s: "Session",
    expense: "Expense",
    file_bytes: bytes,
    filename: str,
    content_type: str,
    user: "User",
    storage: "Storage",
    bucket: str,
) -> str:
    """Store a receipt for an expense, replacing any previous one. Returns the storage key."""
    key = build_receipt_storage_key(user.id, expense.id, filename)
    stored_key = storage.put_for_user(bucket, user.id, key, file_bytes, content_type=content_type)

    previous = expense.receipt_url
    if previous and previous != stored_key:
        storage.delete_for_user(bucket, user.id, previous)

    expense.receipt_url = stored_key
    expense.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="expense.receipt_upload",
        entity_type="Expense",
        entity_id=expense.id,
        metadata={
            "filename": secure_filename(filename),
            "content_type": content_type,
            "sha256": hashlib.sha256(file_bytes).hexdigest(),
            "size_bytes": len(file_bytes),
        },
    )
    return stored_key
