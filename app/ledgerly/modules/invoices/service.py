from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from app.ledgerly.audit import record_event
from app.ledgerly.models import BusinessSettings, new_id
from app.ledgerly.modules.invoices.models import INVOICE_STATUSES, PAYMENT_METHODS
from app.ledgerly.security import generate_share_token
from app.ledgerly.utils import AmountOutOfRange, check_amount, clean, money, parse_date, parse_decimal

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.clients.models import Client
    from app.ledgerly.modules.invoices.models import Invoice
    from app.ledgerly.modules.line_item_templates.models import LineItemTemplate


FROM_FIELDS = (
    "from_name",
    "from_email",
    "from_address",
    "from_phone",
    "from_business_number",
    "from_website",
    "from_owner",
)
BILL_TO_FIELDS = (
    "bill_to_name",
    "bill_to_email",
    "bill_to_address",
    "bill_to_phone",
    "bill_to_mobile",
    "bill_to_fax",
)

_STATUS_BADGES = {
    "paid": ("success", "Paid"),
    "sent": ("default", "Sent"),
    "draft": ("secondary", "Draft"),
    "overdue": ("destructive", "Overdue"),
}

PAYMENT_METHOD_LABELS = {
    "check": "Check",
    "cash": "Cash",
    "direct_deposit": "Direct Deposit",
    "paypal": "PayPal",
    "venmo": "Venmo",
    "zelle": "Zelle",
    "wire_transfer": "Wire Transfer",
    "other": "Other",
}


def invoice_status_badge(status: str | None) -> tuple[str, str]:
    """(variant, label); unknown statuses keep their raw label."""
    return _STATUS_BADGES.get(status or "", ("outline", status or ""))


def payment_method_label(method: str | None) -> str:
    if not method:
        return "—"
    return PAYMENT_METHOD_LABELS.get(method, method)


# ---------- Line items & totals ----------
def normalize_line_items(raw_items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Turn submitted rows into stored line items. amount = quantity × rate,
    rounded half-up to cents. Rows with no description, quantity and rate are dropped.
    Raises ValueError on a non-numeric quantity or rate, AmountOutOfRange when
    a value or the resulting amount does not fit a money column.
    """
    items: list[dict[str, Any]] = []
    for raw in raw_items:
        description = (raw.get("description") or "").strip()
        q_raw = raw.get("quantity")
        r_raw = raw.get("rate")
        if not description and not str(q_raw or "").strip() and not str(r_raw or "").strip():
            continue
        quantity = parse_decimal(None if q_raw is None else str(q_raw), default=Decimal("1"))
        rate = money(parse_decimal(None if r_raw is None else str(r_raw), default=Decimal("0")))
        amount = check_amount(money(quantity * rate))
        items.append(
            {
                "id": raw.get("id") or new_id(),
                "description": description,
                "quantity": float(quantity),
                "rate": float(rate),
                "amount": float(amount),
            }
        )
    return items


def calculate_invoice_totals(line_items: Iterable[dict[str, Any]]) -> tuple[Decimal, Decimal]:
    """(subtotal, total). There is no tax or discount line, so the two match."""
    subtotal = money(sum((money(item.get("amount")) for item in line_items), Decimal("0")))
    return subtotal, subtotal


def line_items_from_form(form) -> list[dict[str, Any]]:
    """Parallel `item_*` form lists into raw line-item dicts."""
    ids = form.getlist("item_id")
    descriptions = form.getlist("item_description")
    quantities = form.getlist("item_quantity")
    rates = form.getlist("item_rate")
    rows = []
    for i, description in enumerate(descriptions):
        rows.append(
            {
                "id": ids[i] if i < len(ids) and ids[i] else None,
                "description": description,
                "quantity": quantities[i] if i < len(quantities) else None,
                "rate": rates[i] if i < len(rates) else None,
            }
        )
    return rows


def line_items_from_templates(templates: Iterable["LineItemTemplate"]) -> list[dict[str, Any]]:
    return [
        {
            "id": None,
            "description": t.description or t.name,
            "quantity": str(t.quantity if t.quantity is not None else 1),
            "rate": str(t.rate),
        }
        for t in templates
    ]


def next_invoice_number(s: "Session", user: "User") -> str:
    from app.ledgerly.modules.invoices.models import Invoice

    count = s.query(Invoice).filter(Invoice.user_id == user.id).count()
    return f"INV-{count + 1:04d}"


def invoice_defaults(
    s: "Session",
    user: "User",
    client: "Client | None" = None,
    templates: Iterable["LineItemTemplate"] = (),
) -> dict[str, Any]:
    """Prefill for the new-invoice form from business settings, a client and templates."""
    settings = s.query(BusinessSettings).filter(BusinessSettings.user_id == user.id).one_or_none()
    defaults: dict[str, Any] = {
        "invoice_name": "Invoice",
        "invoice_number": next_invoice_number(s, user),
        "date": date.today().isoformat(),
        "terms": "Due on receipt",
        "status": "draft",
        "notes": "",
        "client_id": "",
        "line_items": line_items_from_templates(templates),
    }
    if settings is not None:
        defaults.update(
            {
                "from_name": settings.business_name,
                "from_email": settings.business_email,
                "from_address": settings.business_address,
                "from_phone": settings.business_phone,
                "from_business_number": settings.business_number,
                "from_website": settings.business_website,
                "from_owner": settings.business_owner,
                "notes": settings.default_invoice_note or "",
            }
        )
    if client is not None:
        defaults.update(
            {
                "client_id": client.id,
                "bill_to_name": client.name,
                "bill_to_email": client.email,
                "bill_to_address": "\n".join(p for p in (client.address, client.city_line, client.country) if p),
                "bill_to_phone": client.phone,
                "bill_to_mobile": client.mobile,
                "bill_to_fax": client.fax,
            }
        )
    return defaults


# ---------- Validation ----------
def validate_invoice_payload(payload: dict) -> list[str]:
    """Validate invoice creation/update payload. Returns list of errors."""
    errors = []
    if not (payload.get("invoice_number") or "").strip():
        errors.append("Invoice number is required.")
    try:
        if parse_date(payload.get("date")) is None:
            errors.append("Invoice date is required.")
    except ValueError:
        errors.append("Invoice date must be YYYY-MM-DD.")
    status = (payload.get("status") or "").strip()
    if status and status not in INVOICE_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(INVOICE_STATUSES)}")
    try:
        _, total = calculate_invoice_totals(normalize_line_items(payload.get("line_items") or []))
        check_amount(total)
    except AmountOutOfRange:
        errors.append("Invoice total is too large.")
    except ValueError:
        errors.append("Line item quantity and rate must be numbers.")
    return errors


def validate_payment_payload(payload: dict) -> list[str]:
    errors = []
    method = (payload.get("payment_method") or "").strip()
    if not method:
        errors.append("Payment method is required.")
    elif method not in PAYMENT_METHODS:
        errors.append(f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}")
    try:
        parse_date(payload.get("payment_date"))
    except ValueError:
        errors.append("Payment date must be YYYY-MM-DD.")
    return errors


# ---------- CRUD ----------
def _apply_payload(invoice: "Invoice", payload: dict) -> dict[str, Any]:
    changes: dict[str, Any] = {}

    def _set(field: str, value: Any) -> None:
        old = getattr(invoice, field)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(invoice, field, value)

    _set("invoice_name", clean(payload.get("invoice_name")) or "Invoice")
    _set("invoice_number", (payload.get("invoice_number") or "").strip())
    _set("date", parse_date(payload.get("date")))
    _set("terms", clean(payload.get("terms")) or "Due on receipt")
    _set("status", (payload.get("status") or "").strip() or "draft")
    _set("notes", clean(payload.get("notes")))
    _set("client_id", clean(payload.get("client_id")))
    for f in FROM_FIELDS + BILL_TO_FIELDS:
        _set(f, clean(payload.get(f)))

    items = normalize_line_items(payload.get("line_items") or [])
    subtotal, total = calculate_invoice_totals(items)
    if items != invoice.line_items:
        changes["line_items"] = {"count": len(items)}
    invoice.line_items = items
    invoice.subtotal = subtotal
    invoice.total = total
    invoice.balance_due = Decimal("0.00") if invoice.status == "paid" else total
    return changes


def create_invoice(s: "Session", payload: dict, user: "User") -> "Invoice":
    from app.ledgerly.modules.invoices.models import Invoice

    now = datetime.utcnow()
    invoice = Invoice(user_id=user.id, line_items=[], created_at=now, updated_at=now)
    _apply_payload(invoice, payload)
    s.add(invoice)
    s.flush()

    record_event(
        s,
        actor=user,
        action="invoice.create",
        entity_type="Invoice",
        entity_id=invoice.id,
        metadata={"invoice_number": invoice.invoice_number, "total": invoice.total},
    )
    return invoice


def update_invoice(s: "Session", invoice: "Invoice", payload: dict, user: "User") -> "Invoice":
    changes = _apply_payload(invoice, payload)
    invoice.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="invoice.edit",
        entity_type="Invoice",
        entity_id=invoice.id,
        metadata={"invoice_number": invoice.invoice_number, "changes": changes},
    )
    return invoice


def delete_invoice(s: "Session", invoice: "Invoice", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="invoice.delete",
        entity_type="Invoice",
        entity_id=invoice.id,
        metadata={"invoice_number": invoice.invoice_number},
    )
    s.delete(invoice)


def mark_invoice_paid(s: "Session", invoice: "Invoice", payload: dict, user: "User") -> "Invoice":
    invoice.status = "paid"
    invoice.balance_due = Decimal("0.00")
    invoice.payment_method = (payload.get("payment_method") or "").strip()
    invoice.payment_date = parse_date(payload.get("payment_date")) or date.today()
    invoice.payment_reference = clean(payload.get("payment_reference"))
    invoice.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="invoice.mark_paid",
        entity_type="Invoice",
        entity_id=invoice.id,
        metadata={
            "invoice_number": invoice.invoice_number,
            "payment_method": invoice.payment_method,
            "payment_date": invoice.payment_date,
        },
    )
    return invoice


def share_invoice(s: "Session", invoice: "Invoice", user: "User") -> str:
    """Ensure the invoice has a share token; an existing token is kept."""
    if not invoice.share_token:
        invoice.share_token = generate_share_token()
        invoice.updated_at = datetime.utcnow()
        record_event(s, actor=user, action="invoice.share", entity_type="Invoice", entity_id=invoice.id)
    return invoice.share_token


def unshare_invoice(s: "Session", invoice: "Invoice", user: "User") -> None:
    if invoice.share_token:
        invoice.share_token = None
        invoice.updated_at = datetime.utcnow()
        record_event(s, actor=user, action="invoice.unshare", entity_type="Invoice", entity_id=invoice.id)


def group_invoices_by_year(invoices: Iterable["Invoice"]) -> list[tuple[int, list["Invoice"], Decimal]]:
    """[(year, invoices, total)] with the newest year first; page order is kept within a year."""
    groups: OrderedDict[int, list["Invoice"]] = OrderedDict()
    for inv in invoices:
        groups.setdefault(inv.date.year, []).append(inv)
    return [
        (year, items, money(sum((money(i.total) for i in items), Decimal("0"))))
        for year, items in sorted(groups.items(), key=lambda kv: kv[0], reverse=True)
    ]
