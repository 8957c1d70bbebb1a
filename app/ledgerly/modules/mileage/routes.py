from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.listing.filtering import today_in
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import MILEAGE_COLUMN_MAP
from app.ledgerly.listing.table import TableConfig, build_list
from app.ledgerly.modules.mileage.models import MileageRecord
from app.ledgerly.modules.mileage.service import (
    create_mileage,
    delete_mileage,
    mileage_totals,
    month_miles,
    update_mileage,
    validate_mileage_payload,
)
from app.ledgerly.modules.saved_views.intents import handle_view_intent, saved_views_context
from app.ledgerly.tenancy import current_user, get_owned_or_404, login_required, owned_query

bp = Blueprint("mileage", __name__)

MILEAGE_TABLE = TableConfig(
    table_name="mileage",
    search_fields=("purpose", "notes"),
    column_map=MILEAGE_COLUMN_MAP,
    default_sort="date",
    default_order="desc",
    status_column=None,
    category_column=None,
    date_column="date",
)

SORTABLE_COLUMNS = [
    ("date", "Date"),
    ("purpose", "Purpose"),
    ("miles", "Miles"),
    ("rate", "Rate"),
    ("deduction", "Deduction"),
]


def _default_rate() -> Decimal:
    return Decimal(str(current_app.config.get("DEFAULT_MILEAGE_RATE") or "0.67"))


def _mileage_payload() -> dict:
    return {
        "date": request.form.get("date"),
        "purpose": request.form.get("purpose"),
        "miles": request.form.get("miles"),
        "rate_per_mile": request.form.get("rate_per_mile"),
        "notes": request.form.get("notes"),
    }


@bp.get("/mileage")
@login_required
def mileage_list():
    s = db_session()
    tz = current_app.config.get("APP_TIMEZONE")
    today = today_in(tz)
    result = build_list(
        owned_query(s, MileageRecord),
        MileageRecord,
        MILEAGE_TABLE,
        flat_args(request.args),
        tz=tz,
    )
    page_miles, page_deduction = mileage_totals(result.items)
    return render_template(
        "mileage/list.html",
        result=result,
        page_miles=page_miles,
        page_deduction=page_deduction,
        this_month_miles=month_miles(owned_query(s, MileageRecord), today),
        default_rate=_default_rate(),
        today=today,
        saved_views=saved_views_context(MILEAGE_TABLE.table_name),
        table_name=MILEAGE_TABLE.table_name,
        sortable_columns=SORTABLE_COLUMNS,
    )


@bp.post("/mileage")
@login_required
def mileage_action():
    back = url_for("mileage.mileage_list")
    resp = handle_view_intent(MILEAGE_TABLE.table_name, back)
    if resp is not None:
        return resp

    s = db_session()
    u = current_user()
    intent = (request.form.get("intent") or "create").strip()

    if intent == "create":
        payload = _mileage_payload()
        errors = validate_mileage_payload(payload, _default_rate())
        if errors:
            for e in errors:
                flash(e, "danger")
            return redirect(back)
        create_mileage(s, payload, u, _default_rate())
        s.commit()
        flash("Trip added.", "success")
        return redirect(back)

    if intent == "delete":
        record = get_owned_or_404(s, MileageRecord, (request.form.get("id") or "").strip())
        delete_mileage(s, record, u)
        s.commit()
        flash("Trip deleted.", "success")
        return redirect(back)

    return {"error": "Invalid intent"}, 400


@bp.get("/mileage/<record_id>/edit")
@login_required
def mileage_edit_get(record_id: str):
    s = db_session()
    record = get_owned_or_404(s, MileageRecord, record_id)
    return render_template("mileage/edit.html", record=record, form=None)


@bp.post("/mileage/<record_id>/edit")
@login_required
def mileage_edit_post(record_id: str):
    s = db_session()
    u = current_user()
    record = get_owned_or_404(s, MileageRecord, record_id)
    payload = _mileage_payload()

    errors = validate_mileage_payload(payload, _default_rate())
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("mileage/edit.html", record=record, form=payload), 400

    update_mileage(s, record, payload, u, _default_rate())
    s.commit()

    flash("Trip updated.", "success")
    return redirect(url_for("mileage.mileage_list"))
