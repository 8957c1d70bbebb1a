from __future__ import annotations

from typing import TYPE_CHECKING

from app.ledgerly.audit import record_event
from app.ledgerly.listing.views import ViewState, decode_view_state, validate_view_name
from app.ledgerly.modules.saved_views.models import VIEW_TABLES, SavedView

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User


def list_saved_views(s: "Session", user: "User", table_name: str) -> list[SavedView]:
    """Saved views for one table, newest first."""
    return (
        s.query(SavedView)
        .filter(SavedView.user_id == user.id)
        .filter(SavedView.table_name == table_name)
        .order_by(SavedView.created_at.desc(), SavedView.id.asc())
        .all()
    )


def validate_saved_view_payload(s: "Session", user: "User", payload: dict) -> list[str]:
    errors = []
    name = (payload.get("name") or "").strip()
    table_name = (payload.get("table_name") or "").strip()

    name_error = validate_view_name(name)
    if name_error:
        errors.append(name_error)
    if table_name not in VIEW_TABLES:
        errors.append(f"Invalid table. Must be one of: {', '.join(VIEW_TABLES)}")

    if not errors:
        existing = (
            s.query(SavedView.id)
            .filter(SavedView.user_id == user.id)
            .filter(SavedView.table_name == table_name)
            .filter(SavedView.name == name)
            .first()
        )
        if existing:
            errors.append(f'A view named "{name}" already exists.')
    return errors


def create_saved_view(s: "Session", user: "User", payload: dict) -> SavedView:
    state: ViewState = decode_view_state(payload.get("view_state"))
    view = SavedView(
        user_id=user.id,
        name=(payload.get("name") or "").strip(),
        table_name=(payload.get("table_name") or "").strip(),
        view_state=state.to_dict(),
    )
    s.add(view)
    s.flush()

    record_event(
        s,
        actor=user,
        action="saved_view.create",
        entity_type="SavedView",
        entity_id=view.id,
        metadata={"name": view.name, "table_name": view.table_name},
    )
    return view


def delete_saved_view(s: "Session", user: "User", view_id: str) -> bool:
    """Returns False when the view does not exist or belongs to someone else."""
    view = (
        s.query(SavedView)
        .filter(SavedView.id == view_id)
        .filter(SavedView.user_id == user.id)
        .one_or_none()
    )
    if view is None:
        return False

    record_event(
        s,
        actor=user,
        action="saved_view.delete",
        entity_type="SavedView",
        entity_id=view.id,
        metadata={"name": view.name, "table_name": view.table_name},
    )
    s.delete(view)
    return True
