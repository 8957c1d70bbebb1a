from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import TEMPLATE_COLUMN_MAP
from app.ledgerly.listing.table import TableConfig, build_list
from app.ledgerly.modules.line_item_templates.models import LineItemTemplate
from app.ledgerly.modules.line_item_templates.service import (
    create_template,
    delete_template,
    update_template,
    validate_template_payload,
)
from app.ledgerly.modules.saved_views.intents import handle_view_intent, saved_views_context
from app.ledgerly.tenancy import current_user, get_owned_or_404, login_required, owned_query

bp = Blueprint("line_item_templates", __name__)

TEMPLATES_TABLE = TableConfig(
    table_name="line_item_templates",
    search_fields=("name", "description"),
    column_map=TEMPLATE_COLUMN_MAP,
    default_sort="name",
    default_order="asc",
    status_column=None,
    category_column=None,
    date_column=None,
)

SORTABLE_COLUMNS = [
    ("name", "Name"),
    ("description", "Description"),
    ("rate", "Rate"),
    ("quantity", "Quantity"),
]


def _template_payload() -> dict:
    return {
        "name": request.form.get("name"),
        "description": request.form.get("description"),
        "rate": request.form.get("rate"),
        "quantity": request.form.get("quantity"),
    }


@bp.get("/templates")
@login_required
def templates_page():
    s = db_session()
    result = build_list(
        owned_query(s, LineItemTemplate),
        LineItemTemplate,
        TEMPLATES_TABLE,
        flat_args(request.args),
        tz=current_app.config.get("APP_TIMEZONE"),
    )
    return render_template(
        "line_item_templates/list.html",
        result=result,
        saved_views=saved_views_context(TEMPLATES_TABLE.table_name),
        table_name=TEMPLATES_TABLE.table_name,
        sortable_columns=SORTABLE_COLUMNS,
    )


@bp.post("/templates")
@login_required
def templates_action():
    back = url_for("line_item_templates.templates_page")
    resp = handle_view_intent(TEMPLATES_TABLE.table_name, back)
    if resp is not None:
        return resp

    s = db_session()
    u = current_user()
    intent = (request.form.get("intent") or "").strip()

    if intent in ("create", "update"):
        payload = _template_payload()
        errors = validate_template_payload(payload)
        if errors:
            for e in errors:
                flash(e, "danger")
            return redirect(back)
        if intent == "create":
            create_template(s, payload, u)
            message = "Template created."
        else:
            template = get_owned_or_404(s, LineItemTemplate, (request.form.get("id") or "").strip())
            update_template(s, template, payload, u)
            message = "Template updated."
        s.commit()
        flash(message, "success")
        return redirect(back)

    if intent == "delete":
        template = get_owned_or_404(s, LineItemTemplate, (request.form.get("id") or "").strip())
        delete_template(s, template, u)
        s.commit()
        flash("Template deleted.", "success")
        return redirect(back)

    return {"error": "Invalid intent"}, 400
