"""
Shared POST handling for the saved-views menu on list pages.
"""
from __future__ import annotations

from flask import Response, current_app, flash, jsonify, redirect, request

from app.ledgerly.db import db_session
from app.ledgerly.modules.saved_views.models import SavedView
from app.ledgerly.modules.saved_views.service import (
    create_saved_view,
    delete_saved_view,
    list_saved_views,
    validate_saved_view_payload,
)
from app.ledgerly.listing.views import ViewState, build_url_from_view_state, decode_view_state, get_view_description
from app.ledgerly.tenancy import current_user

VIEW_INTENTS = ("save_view", "delete_view")


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


def _respond(ok: bool, message: str, back_url: str, status: int = 200) -> Response:
    if _wants_json():
        if ok:
            return jsonify({"success": True})
        return jsonify({"error": message}), status  # type: ignore[return-value]
    flash(message, "success" if ok else "danger")
    return redirect(back_url)


def handle_view_intent(table_name: str, back_url: str) -> Response | None:
    """
    Handle `save_view` / `delete_view`. Returns None when the posted intent is
    not a saved-view intent, so the caller can handle its own intents.
    """
    intent = (request.form.get("intent") or "").strip()
    if intent not in VIEW_INTENTS:
        return None

    s = db_session()
    u = current_user()

    if intent == "save_view":
        # A view always belongs to the page it was saved from.
        payload = {
            "name": request.form.get("view_name"),
            "table_name": table_name,
            "view_state": request.form.get("view_state"),
        }
        errors = validate_saved_view_payload(s, u, payload)
        if errors:
            return _respond(False, " ".join(errors), back_url, 400)
        view = create_saved_view(s, u, payload)
        s.commit()
        current_app.logger.info("Saved view %s created for table %s", view.id, view.table_name)
        return _respond(True, f'View "{view.name}" saved.', back_url)

    view_id = (request.form.get("view_id") or "").strip()
    if not view_id or not delete_saved_view(s, u, view_id):
        return _respond(False, "View not found.", back_url, 404)
    s.commit()
    return _respond(True, "View deleted.", back_url)


def saved_views_context(table_name: str) -> list[dict]:
    """Saved views for a list page, each with its decoded state, link and description."""
    views: list[SavedView] = list_saved_views(db_session(), current_user(), table_name)
    base_args = {"limit": request.args["limit"]} if request.args.get("limit") else None
    out = []
    for v in views:
        state: ViewState = decode_view_state(v.view_state)
        out.append(
            {
                "id": v.id,
                "name": v.name,
                "state": state,
                "url": build_url_from_view_state(state, base_args),
                "description": get_view_description(state),
            }
        )
    return out
