from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from app.ledgerly.audit import record_event
from app.ledgerly.utils import AmountOutOfRange, clean, money, parse_decimal

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.line_item_templates.models import LineItemTemplate


def validate_template_payload(payload: dict) -> list[str]:
    errors = []
    if not (payload.get("name") or "").strip():
        errors.append("Template name is required.")
    try:
        rate = parse_decimal(payload.get("rate"))
        if rate is None:
            errors.append("Rate is required.")
        elif rate < 0:
            errors.append("Rate cannot be negative.")
    except AmountOutOfRange:
        errors.append("Rate is too large.")
    except ValueError:
        errors.append("Rate must be a number.")
    try:
        quantity = parse_decimal(payload.get("quantity"))
        if quantity is not None and quantity <= 0:
            errors.append("Quantity must be greater than zero.")
    except AmountOutOfRange:
        errors.append("Quantity is too large.")
    except ValueError:
        errors.append("Quantity must be a number.")
    return errors


def _values(payload: dict) -> dict:
    return {
        "name": (payload.get("name") or "").strip(),
        "description": clean(payload.get("description")),
        "rate": money(parse_decimal(payload.get("rate"))),
        "quantity": parse_decimal(payload.get("quantity"), default=Decimal("1")),
    }


def create_template(s: "Session", payload: dict, user: "User") -> "LineItemTemplate":
    from app.ledgerly.modules.line_item_templates.models import LineItemTemplate

    now = datetime.utcnow()
    template = LineItemTemplate(user_id=user.id, created_at=now, updated_at=now, **_values(payload))
    s.add(template)
    s.flush()

    record_event(
        s,
        actor=user,
        action="line_item_template.create",
        entity_type="LineItemTemplate",
        entity_id=template.id,
        metadata={"name": template.name, "rate": template.rate},
    )
    return template


def update_template(s: "Session", template: "LineItemTemplate", payload: dict, user: "User") -> "LineItemTemplate":
    changes = {}
    for field, new in _values(payload).items():
        old = getattr(template, field)
        if old != new:
            changes[field] = {"old": old, "new": new}
            setattr(template, field, new)
    template.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="line_item_template.edit",
        entity_type="LineItemTemplate",
        entity_id=template.id,
        metadata={"name": template.name, "changes": changes},
    )
    return template


def delete_template(s: "Session", template: "LineItemTemplate", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="line_item_template.delete",
        entity_type="LineItemTemplate",
        entity_id=template.id,
        metadata={"name": template.name},
    )
    s.delete(template)
