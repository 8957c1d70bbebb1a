from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.modules.household.service import (
    MONTHLY_FIELDS,
    PERCENTAGE_FIELDS,
    SQUARE_FOOT_FIELDS,
    estimate_household_deductions,
    get_household_settings,
    upsert_household_settings,
    validate_household_payload,
)
from app.ledgerly.tenancy import current_user, login_required

bp = Blueprint("household", __name__)


@bp.get("/household")
@login_required
def household_get():
    settings = get_household_settings(db_session(), current_user())
    return render_template(
        "household/settings.html",
        settings=settings,
        estimate=estimate_household_deductions(settings),
    )


@bp.post("/household")
@login_required
def household_post():
    s = db_session()
    u = current_user()
    payload = {f: request.form.get(f) for f in PERCENTAGE_FIELDS + MONTHLY_FIELDS + SQUARE_FOOT_FIELDS}

    errors = validate_household_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("household.household_get"))

    upsert_household_settings(s, payload, u)
    s.commit()

    flash("Household settings saved.", "success")
    return redirect(url_for("household.household_get"))
