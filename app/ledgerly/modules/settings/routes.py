from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.ledgerly.db import db_session
from app.ledgerly.modules.settings.service import (
    BUSINESS_FIELDS,
    get_or_create_business_settings,
    logo_content_type,
    update_business_settings,
    upload_logo,
    validate_business_settings_payload,
)
from app.ledgerly.storage import storage_from_config
from app.ledgerly.tenancy import current_user, login_required

bp = Blueprint("settings", __name__)


@bp.get("/settings")
@login_required
def settings_get():
    s = db_session()
    settings = get_or_create_business_settings(s, current_user())
    s.commit()
    return render_template("settings/business.html", settings=settings)


@bp.post("/settings")
@login_required
def settings_post():
    s = db_session()
    u = current_user()
    settings = get_or_create_business_settings(s, u)
    payload = {f: request.form.get(f) for f in BUSINESS_FIELDS}

    errors = validate_business_settings_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("settings.settings_get"))

    update_business_settings(s, settings, payload, u)
    s.commit()

    flash("Settings saved.", "success")
    return redirect(url_for("settings.settings_get"))


@bp.post("/settings/logo")
@login_required
def settings_logo_upload():
    s = db_session()
    u = current_user()
    settings = get_or_create_business_settings(s, u)

    f = request.files.get("logo")
    if not f or not f.filename:
        flash("Please select a file to upload.", "danger")
        return redirect(url_for("settings.settings_get"))

    expected_type = logo_content_type(f.filename)
    if expected_type is None or (f.mimetype or "").strip() != expected_type:
        flash("Logo must be a PNG, JPEG, GIF or WebP image.", "danger")
        return redirect(url_for("settings.settings_get"))

    upload_logo(
        s,
        settings,
        f.read(),
        f.filename,
        u,
        storage_from_config(current_app.config),
        current_app.config["LOGOS_BUCKET"],
    )
    s.commit()

    flash("Logo uploaded.", "success")
    return redirect(url_for("settings.settings_get"))
