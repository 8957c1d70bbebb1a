from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from sqlalchemy import func

from app.ledgerly.audit import record_event
from app.ledgerly.utils import AmountOutOfRange, check_amount, clean, money, parse_date, parse_decimal

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.mileage.models import MileageRecord

# Largest value a Numeric(10, 2) column holds.
MAX_MILEAGE_VALUE = Decimal("99999999.99")


def calculate_mileage_deduction(miles: Decimal | None, rate_per_mile: Decimal | None) -> Decimal:
    return money((miles or Decimal("0")) * (rate_per_mile or Decimal("0")))


def mileage_totals(records: Iterable["MileageRecord"]) -> tuple[Decimal, Decimal]:
    """(miles, deduction) summed over `records`."""
    miles = Decimal("0")
    deduction = Decimal("0")
    for r in records:
        miles += r.miles or Decimal("0")
        deduction += money(r.total)
    return miles, money(deduction)


def month_miles(query, today: date) -> Decimal:
    """Miles over every trip in `query` dated in the calendar month of `today`."""
    from app.ledgerly.modules.mileage.models import MileageRecord

    start = today.replace(day=1)
    end = date(today.year + today.month // 12, today.month % 12 + 1, 1)
    total = query.filter(MileageRecord.date >= start, MileageRecord.date < end).with_entities(
        func.coalesce(func.sum(MileageRecord.miles), 0)
    ).scalar()
    return Decimal(str(total or 0))


def validate_mileage_payload(payload: dict, default_rate: Decimal = Decimal("0.67")) -> list[str]:
    errors = []
    miles = rate = None
    try:
        if parse_date(payload.get("date")) is None:
            errors.append("Date is required.")
    except ValueError:
        errors.append("Date must be YYYY-MM-DD.")
    if not (payload.get("purpose") or "").strip():
        errors.append("Purpose is required.")
    try:
        miles = parse_decimal(payload.get("miles"), max_abs=MAX_MILEAGE_VALUE)
        if miles is None:
            errors.append("Miles is required.")
        elif miles <= 0:
            errors.append("Miles must be greater than zero.")
    except AmountOutOfRange:
        errors.append("Miles is too large.")
    except ValueError:
        errors.append("Miles must be a number.")
    try:
        rate = parse_decimal(payload.get("rate_per_mile"), default=default_rate, max_abs=MAX_MILEAGE_VALUE)
        if rate < 0:
            errors.append("Rate per mile cannot be negative.")
    except AmountOutOfRange:
        errors.append("Rate per mile is too large.")
    except ValueError:
        errors.append("Rate per mile must be a number.")
    if not errors and miles is not None and rate is not None:
        try:
            check_amount(calculate_mileage_deduction(money(miles), money(rate)))
        except AmountOutOfRange:
            errors.append("Mileage deduction is too large.")
    return errors


def _values(payload: dict, default_rate: Decimal) -> dict:
    miles = money(parse_decimal(payload.get("miles")))
    rate = money(parse_decimal(payload.get("rate_per_mile"), default=default_rate))
    return {
        "date": parse_date(payload.get("date")),
        "purpose": (payload.get("purpose") or "").strip(),
        "miles": miles,
        "rate_per_mile": rate,
        "total": calculate_mileage_deduction(miles, rate),
        "notes": clean(payload.get("notes")),
    }


def create_mileage(s: "Session", payload: dict, user: "User", default_rate: Decimal) -> "MileageRecord":
    from app.ledgerly.modules.mileage.models import MileageRecord

    now = datetime.utcnow()
    record = MileageRecord(user_id=user.id, created_at=now, updated_at=now, **_values(payload, default_rate))
    s.add(record)
    s.flush()

    record_event(
        s,
        actor=user,
        action="mileage.create",
        entity_type="MileageRecord",
        entity_id=record.id,
        metadata={"miles": record.miles, "total": record.total},
    )
    return record


def update_mileage(
    s: "Session", record: "MileageRecord", payload: dict, user: "User", default_rate: Decimal
) -> "MileageRecord":
    changes = {}
    for field, new in _values(payload, default_rate).items():
        old = getattr(record, field)
        if old != new:
            changes[field] = {"old": old, "new": new}
            setattr(record, field, new)
    record.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="mileage.edit",
        entity_type="MileageRecord",
        entity_id=record.id,
        metadata={"changes": changes},
    )
    return record


def delete_mileage(s: "Session", record: "MileageRecord", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="mileage.delete",
        entity_type="MileageRecord",
        entity_id=record.id,
        metadata={"date": record.date, "miles": record.miles},
    )
    s.delete(record)
