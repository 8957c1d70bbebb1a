from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import Blueprint, abort, current_app, g, redirect, render_template, send_file, url_for
from sqlalchemy import func

from app.ledgerly.db import db_session
from app.ledgerly.modules.clients.models import Client
from app.ledgerly.modules.expenses.models import Expense
from app.ledgerly.modules.invoices.models import Invoice
from app.ledgerly.modules.mileage.models import MileageRecord
from app.ledgerly.modules.settings.service import logo_content_type
from app.ledgerly.storage import LocalStorage, StorageError, storage_from_config
from app.ledgerly.tenancy import current_user, login_required, owned_query
from app.ledgerly.utils import money

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    if getattr(g, "current_user", None):
        return redirect(url_for("routes.dashboard"))
    return render_template("public/index.html")


@bp.get("/dashboard")
@login_required
def dashboard():
    s = db_session()
    u = current_user()
    year_start = date(date.today().year, 1, 1)

    outstanding = (
        owned_query(s, Invoice)
        .filter(Invoice.status.in_(("sent", "overdue")))
        .with_entities(func.coalesce(func.sum(Invoice.balance_due), 0))
        .scalar()
    )
    income_ytd = (
        owned_query(s, Invoice)
        .filter(Invoice.status == "paid")
        .filter(Invoice.date >= year_start)
        .with_entities(func.coalesce(func.sum(Invoice.total), 0))
        .scalar()
    )
    expenses_ytd = (
        owned_query(s, Expense)
        .filter(Expense.date >= year_start)
        .with_entities(func.coalesce(func.sum(Expense.total), 0))
        .scalar()
    )
    stats = {
        "clients": owned_query(s, Client).count(),
        "invoices": owned_query(s, Invoice).count(),
        "expenses": owned_query(s, Expense).count(),
        "mileage": owned_query(s, MileageRecord).count(),
        "outstanding": money(Decimal(str(outstanding))),
        "income_ytd": money(Decimal(str(income_ytd))),
        "expenses_ytd": money(Decimal(str(expenses_ytd))),
    }
    recent_invoices = (
        owned_query(s, Invoice).order_by(Invoice.date.desc(), Invoice.id.asc()).limit(5).all()
    )
    return render_template("dashboard.html", user=u, stats=stats, recent_invoices=recent_invoices)


@bp.get("/storage/<bucket>/<path:key>")
def public_storage(bucket: str, key: str):
    """Serve the public logos bucket when objects live on local disk."""
    if bucket != current_app.config["LOGOS_BUCKET"]:
        abort(404)
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        abort(404)
    mimetype = logo_content_type(key)
    if mimetype is None or any(part in ("", ".", "..") for part in key.split("/")):
        abort(404)
    try:
        fobj = storage.open(bucket, key)
    except StorageError:
        abort(404)
    resp = send_file(fobj, mimetype=mimetype, download_name=key.rsplit("/", 1)[-1], max_age=3600)
    resp.headers["X-Content-Type-Options"] = "nosniff"
    return resp


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """Liveness check. No DB access."""
    return "ok", 200
