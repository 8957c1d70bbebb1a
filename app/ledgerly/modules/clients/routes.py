from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import CLIENT_COLUMN_MAP
from app.ledgerly.listing.table import TableConfig, build_list
from app.ledgerly.modules.clients.models import Client
from app.ledgerly.modules.clients.service import (
    CLIENT_FIELDS,
    client_status_options,
    create_client,
    delete_client,
    update_client,
    validate_client_payload,
)
from app.ledgerly.modules.invoices.models import Invoice
from app.ledgerly.modules.saved_views.intents import handle_view_intent, saved_views_context
from app.ledgerly.tenancy import current_user, get_owned_or_404, login_required, owned_query

bp = Blueprint("clients", __name__)

CLIENTS_TABLE = TableConfig(
    table_name="clients",
    search_fields=("name", "email", "phone", "contact_person"),
    column_map=CLIENT_COLUMN_MAP,
    default_sort="name",
    default_order="asc",
    status_column="status",
    category_column=None,
    date_column=None,
)

SORTABLE_COLUMNS = [
    ("name", "Name"),
    ("contact", "Contact"),
    ("email", "Email"),
    ("status", "Status"),
    ("created", "Created"),
]


def _client_payload() -> dict:
    payload = {f: request.form.get(f) for f in CLIENT_FIELDS}
    payload["status"] = request.form.get("status")
    return payload


# ---------- List ----------
@bp.get("/clients")
@login_required
def clients_list():
    s = db_session()
    result = build_list(
        owned_query(s, Client),
        Client,
        CLIENTS_TABLE,
        flat_args(request.args),
        tz=current_app.config.get("APP_TIMEZONE"),
    )
    return render_template(
        "clients/list.html",
        result=result,
        saved_views=saved_views_context(CLIENTS_TABLE.table_name),
        table_name=CLIENTS_TABLE.table_name,
        status_options=client_status_options(),
        sortable_columns=SORTABLE_COLUMNS,
    )


@bp.post("/clients")
@login_required
def clients_list_post():
    resp = handle_view_intent(CLIENTS_TABLE.table_name, url_for("clients.clients_list"))
    if resp is None:
        return {"error": "Invalid intent"}, 400
    return resp


# ---------- New ----------
@bp.get("/clients/new")
@login_required
def clients_new_get():
    return render_template("clients/form.html", client=None, form={}, status_options=client_status_options())


@bp.post("/clients/new")
@login_required
def clients_new_post():
    s = db_session()
    u = current_user()
    payload = _client_payload()

    errors = validate_client_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return (
            render_template("clients/form.html", client=None, form=payload, status_options=client_status_options()),
            400,
        )

    client = create_client(s, payload, u)
    s.commit()

    flash("Client created.", "success")
    return redirect(url_for("clients.client_detail", client_id=client.id))


# ---------- Detail ----------
@bp.get("/clients/<client_id>")
@login_required
def client_detail(client_id: str):
    s = db_session()
    client = get_owned_or_404(s, Client, client_id)
    invoices = (
        owned_query(s, Invoice)
        .filter(Invoice.client_id == client.id)
        .order_by(Invoice.date.desc(), Invoice.id.asc())
        .all()
    )
    return render_template("clients/detail.html", client=client, invoices=invoices)


# ---------- Edit ----------
@bp.get("/clients/<client_id>/edit")
@login_required
def client_edit_get(client_id: str):
    s = db_session()
    client = get_owned_or_404(s, Client, client_id)
    return render_template("clients/form.html", client=client, form={}, status_options=client_status_options())


@bp.post("/clients/<client_id>/edit")
@login_required
def client_edit_post(client_id: str):
    s = db_session()
    u = current_user()
    client = get_owned_or_404(s, Client, client_id)
    payload = _client_payload()

    errors = validate_client_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return (
            render_template("clients/form.html", client=client, form=payload, status_options=client_status_options()),
            400,
        )

    update_client(s, client, payload, u)
    s.commit()

    flash("Client updated.", "success")
    return redirect(url_for("clients.client_detail", client_id=client.id))


# ---------- Delete ----------
@bp.post("/clients/<client_id>/delete")
@login_required
def client_delete(client_id: str):
    s = db_session()
    u = current_user()
    client = get_owned_or_404(s, Client, client_id)
    delete_client(s, client, u)
    s.commit()

    flash("Client deleted.", "success")
    return redirect(url_for("clients.clients_list"))
