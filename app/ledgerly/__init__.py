import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, flash, g, jsonify, redirect, render_template, request, session, url_for

from app.ledgerly.config import load_config, load_settings
from app.ledgerly.db import init_db, teardown_db_session

# Core models must load before any module models: app.ledgerly.models pulls
# every module's models in at its bottom.
from app.ledgerly import models  # noqa: E402,F401
from app.ledgerly.routes import bp as routes_bp
from app.ledgerly.auth import bp as auth_bp, load_current_user
from app.ledgerly.modules.clients.routes import bp as clients_bp
from app.ledgerly.modules.invoices.routes import bp as invoices_bp
from app.ledgerly.modules.invoices.public import bp as public_invoices_bp
from app.ledgerly.modules.expenses.routes import bp as expenses_bp
from app.ledgerly.modules.mileage.routes import bp as mileage_bp
from app.ledgerly.modules.line_item_templates.routes import bp as line_item_templates_bp
from app.ledgerly.modules.household.routes import bp as household_bp
from app.ledgerly.modules.settings.routes import bp as settings_bp
from app.ledgerly.modules.tax_report.routes import bp as tax_report_bp

logger = logging.getLogger(__name__)

_UNTRACKED_PREFIXES = ("/static/", "/health", "/healthz")

DASHBOARD_BLUEPRINTS = (
    clients_bp,
    invoices_bp,
    expenses_bp,
    mileage_bp,
    line_item_templates_bp,
    household_bp,
    settings_bp,
    tax_report_bp,
)


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


def _register_template_helpers(app: Flask) -> None:
    from app.ledgerly.listing.filtering import (
        DATE_PRESET_LABELS,
        build_filter_url,
        clear_all_filters,
        toggle_filter_value,
    )
    from app.ledgerly.listing.pagination import PAGE_SIZE_OPTIONS, create_pagination_url
    from app.ledgerly.listing.search import highlight_search_term
    from app.ledgerly.listing.sorting import build_sort_url, get_sort_indicator
    from app.ledgerly.listing.views import encode_view_state
    from app.ledgerly.modules.clients.service import client_status_badge
    from app.ledgerly.modules.expenses.service import tax_category_label
    from app.ledgerly.modules.invoices.service import invoice_status_badge, payment_method_label
    from app.ledgerly.utils import format_currency

    app.jinja_env.globals.update(
        build_filter_url=build_filter_url,
        build_sort_url=build_sort_url,
        clear_all_filters=clear_all_filters,
        create_pagination_url=create_pagination_url,
        toggle_filter_value=toggle_filter_value,
        get_sort_indicator=get_sort_indicator,
        highlight_search_term=highlight_search_term,
        encode_view_state=encode_view_state,
        client_status_badge=client_status_badge,
        invoice_status_badge=invoice_status_badge,
        payment_method_label=payment_method_label,
        tax_category_label=tax_category_label,
        DATE_PRESET_LABELS=DATE_PRESET_LABELS,
        PAGE_SIZE_OPTIONS=PAGE_SIZE_OPTIONS,
    )

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.template_filter("currency")
    def _currency_filter(value) -> str:
        return f"${format_currency(value)}"


def _register_request_hooks(app: Flask) -> None:
    from app.ledgerly.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_globals() -> dict:
        return {"csrf_token": ensure_csrf_token(), "current_user": getattr(g, "current_user", None)}

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNTRACKED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
            return None
        # Sign-in forms run before any session exists.
        if (request.endpoint or "").startswith("auth."):
            return None
        if validate_csrf(request):
            return None
        if _wants_json():
            return jsonify({"error": "CSRF token missing or invalid."}), 400
        return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    @app.before_request
    def _load_user():
        if request.path.startswith(_UNTRACKED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.teardown_appcontext(teardown_db_session)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(403)
    def _forbidden(e):
        app.logger.warning("Forbidden: %s request_id=%s", request.path, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Forbidden"}), 403
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def _not_found(e):
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _too_large(e):
        flash("File too large. Maximum size is 10MB.", "danger")
        referrer = request.referrer
        if referrer and referrer.startswith(request.host_url):
            return redirect(referrer)
        return redirect(url_for("routes.dashboard"))

    @app.errorhandler(500)
    def _server_error(e):
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        if _wants_json():
            return jsonify({"error": "Internal server error", "request_id": rid}), 500
        return render_template("errors/500.html", request_id=rid), 500


def _register_blueprints(app: Flask) -> None:
    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(public_invoices_bp)
    for bp in DASHBOARD_BLUEPRINTS:
        app.register_blueprint(bp, url_prefix="/dashboard")


def _dispose_engine_after_fork(app: Flask) -> None:
    # gunicorn forks workers after the app is built; pooled connections must not cross the fork.
    if not hasattr(os, "register_at_fork"):
        return

    def _after_fork_child():
        engine = app.extensions.get("sqlalchemy_engine")
        if engine:
            engine.dispose()
            app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

    os.register_at_fork(after_in_child=_after_fork_child)


def create_app() -> Flask:
    load_dotenv()
    settings = load_settings()
    problems = settings.production_problems()
    if problems:
        raise RuntimeError(" ".join(problems))

    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config(settings))
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=7)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    missing_s3 = settings.storage.missing_s3_credentials()
    if missing_s3:
        app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    init_db(app)
    _dispose_engine_after_fork(app)

    _register_template_helpers(app)
    _register_request_hooks(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    logger.info("create_app() complete (env=%s)", settings.env)
    return app
