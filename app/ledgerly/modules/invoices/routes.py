from __future__ import annotations

from urllib.parse import quote

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import INVOICE_COLUMN_MAP
from app.ledgerly.listing.table import TableConfig, build_list
from app.ledgerly.models import BusinessSettings
from app.ledgerly.modules.clients.models import Client
from app.ledgerly.modules.invoices.models import INVOICE_STATUSES, Invoice
from app.ledgerly.modules.invoices.pdf import invoice_pdf_response
from app.ledgerly.modules.invoices.service import (
    BILL_TO_FIELDS,
    FROM_FIELDS,
    PAYMENT_METHOD_LABELS,
    create_invoice,
    delete_invoice,
    group_invoices_by_year,
    invoice_defaults,
    line_items_from_form,
    mark_invoice_paid,
    share_invoice,
    unshare_invoice,
    update_invoice,
    validate_invoice_payload,
    validate_payment_payload,
)
from app.ledgerly.modules.line_item_templates.models import LineItemTemplate
from app.ledgerly.modules.saved_views.intents import handle_view_intent, saved_views_context
from app.ledgerly.modules.settings.service import render_email_subject
from app.ledgerly.tenancy import current_user, get_owned, get_owned_or_404, login_required, owned_query

bp = Blueprint("invoices", __name__)

INVOICES_TABLE = TableConfig(
    table_name="invoices",
    search_fields=("invoice_number", "bill_to_name", "bill_to_email", "notes"),
    column_map=INVOICE_COLUMN_MAP,
    default_sort="date",
    default_order="desc",
    status_column="status",
    category_column=None,
    date_column="date",
)

SORTABLE_COLUMNS = [
    ("invoice_number", "Invoice #"),
    ("client", "Client"),
    ("date", "Date"),
    ("amount", "Amount"),
    ("status", "Status"),
]

STATUS_OPTIONS = [(s, s.capitalize()) for s in INVOICE_STATUSES]


def _invoice_payload() -> dict:
    payload = {
        "invoice_name": request.form.get("invoice_name"),
        "invoice_number": request.form.get("invoice_number"),
        "date": request.form.get("date"),
        "terms": request.form.get("terms"),
        "status": request.form.get("status"),
        "notes": request.form.get("notes"),
        "client_id": request.form.get("client_id"),
        "line_items": line_items_from_form(request.form),
    }
    for f in FROM_FIELDS + BILL_TO_FIELDS:
        payload[f] = request.form.get(f)
    return payload


def _form_context() -> dict:
    s = db_session()
    return {
        "clients": owned_query(s, Client).order_by(Client.name.asc()).all(),
        "templates": owned_query(s, LineItemTemplate).order_by(LineItemTemplate.name.asc()).all(),
        "status_options": STATUS_OPTIONS,
    }


def _validate(payload: dict) -> list[str]:
    errors = validate_invoice_payload(payload)
    client_id = (payload.get("client_id") or "").strip()
    if client_id and get_owned(db_session(), Client, client_id) is None:
        errors.append("Client not found.")
    return errors


# ---------- List ----------
@bp.get("/invoices")
@login_required
def invoices_list():
    s = db_session()
    result = build_list(
        owned_query(s, Invoice),
        Invoice,
        INVOICES_TABLE,
        flat_args(request.args),
        tz=current_app.config.get("APP_TIMEZONE"),
    )
    return render_template(
        "invoices/list.html",
        result=result,
        invoices_by_year=group_invoices_by_year(result.items),
        saved_views=saved_views_context(INVOICES_TABLE.table_name),
        table_name=INVOICES_TABLE.table_name,
        status_options=STATUS_OPTIONS,
        sortable_columns=SORTABLE_COLUMNS,
    )


@bp.post("/invoices")
@login_required
def invoices_list_post():
    resp = handle_view_intent(INVOICES_TABLE.table_name, url_for("invoices.invoices_list"))
    if resp is None:
        return {"error": "Invalid intent"}, 400
    return resp


# ---------- New ----------
@bp.get("/invoices/new")
@login_required
def invoices_new_get():
    s = db_session()
    u = current_user()

    client = None
    client_id = (request.args.get("client_id") or "").strip()
    if client_id:
        client = get_owned(s, Client, client_id)

    template_ids = [t for t in request.args.getlist("template") if t]
    templates = []
    if template_ids:
        templates = owned_query(s, LineItemTemplate).filter(LineItemTemplate.id.in_(template_ids)).all()

    form = invoice_defaults(s, u, client=client, templates=templates)
    return render_template("invoices/form.html", invoice=None, form=form, **_form_context())


@bp.post("/invoices/new")
@login_required
def invoices_new_post():
    s = db_session()
    u = current_user()
    payload = _invoice_payload()

    errors = _validate(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("invoices/form.html", invoice=None, form=payload, **_form_context()), 400

    invoice = create_invoice(s, payload, u)
    s.commit()

    flash("Invoice created.", "success")
    return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))


# ---------- Detail ----------
@bp.get("/invoices/<invoice_id>")
@login_required
def invoice_detail(invoice_id: str):
    s = db_session()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    share_url = None
    if invoice.share_token:
        share_url = url_for(
            "public_invoices.invoice_public", invoice_id=invoice.id, token=invoice.share_token, _external=True
        )
    settings = s.query(BusinessSettings).filter(BusinessSettings.user_id == invoice.user_id).one_or_none()
    email_subject = render_email_subject(settings, invoice.invoice_number)
    mailto_url = None
    if invoice.bill_to_email:
        mailto_url = f"mailto:{invoice.bill_to_email}?subject={quote(email_subject)}"
    return render_template(
        "invoices/detail.html",
        invoice=invoice,
        share_url=share_url,
        email_subject=email_subject,
        mailto_url=mailto_url,
        payment_methods=list(PAYMENT_METHOD_LABELS.items()),
    )


# ---------- Edit ----------
@bp.get("/invoices/<invoice_id>/edit")
@login_required
def invoice_edit_get(invoice_id: str):
    s = db_session()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    return render_template("invoices/form.html", invoice=invoice, form=None, **_form_context())


@bp.post("/invoices/<invoice_id>/edit")
@login_required
def invoice_edit_post(invoice_id: str):
    s = db_session()
    u = current_user()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    payload = _invoice_payload()

    errors = _validate(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("invoices/form.html", invoice=invoice, form=payload, **_form_context()), 400

    update_invoice(s, invoice, payload, u)
    s.commit()

    flash("Invoice updated.", "success")
    return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))


# ---------- Delete ----------
@bp.post("/invoices/<invoice_id>/delete")
@login_required
def invoice_delete(invoice_id: str):
    s = db_session()
    u = current_user()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    delete_invoice(s, invoice, u)
    s.commit()

    flash("Invoice deleted.", "success")
    return redirect(url_for("invoices.invoices_list"))


# ---------- Payment ----------
@bp.post("/invoices/<invoice_id>/mark-paid")
@login_required
def invoice_mark_paid(invoice_id: str):
    s = db_session()
    u = current_user()
    invoice = get_owned_or_404(s, Invoice, invoice_id)

    payload = {
        "payment_method": request.form.get("payment_method"),
        "payment_date": request.form.get("payment_date"),
        "payment_reference": request.form.get("payment_reference"),
    }
    errors = validate_payment_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))

    mark_invoice_paid(s, invoice, payload, u)
    s.commit()

    flash("Invoice marked as paid.", "success")
    return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))


# ---------- Sharing ----------
@bp.post("/invoices/<invoice_id>/share")
@login_required
def invoice_share(invoice_id: str):
    s = db_session()
    u = current_user()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    share_invoice(s, invoice, u)
    s.commit()

    flash("Share link created.", "success")
    return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))


@bp.post("/invoices/<invoice_id>/unshare")
@login_required
def invoice_unshare(invoice_id: str):
    s = db_session()
    u = current_user()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    unshare_invoice(s, invoice, u)
    s.commit()

    flash("Share link disabled.", "success")
    return redirect(url_for("invoices.invoice_detail", invoice_id=invoice.id))


# ---------- PDF ----------
@bp.get("/invoices/<invoice_id>/pdf")
@login_required
def invoice_pdf(invoice_id: str):
    s = db_session()
    invoice = get_owned_or_404(s, Invoice, invoice_id)
    return invoice_pdf_response(invoice)
