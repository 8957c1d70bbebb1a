from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.ledgerly.audit import record_event
from app.ledgerly.modules.clients.models import CLIENT_STATUSES
from app.ledgerly.utils import clean

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.clients.models import Client


CLIENT_FIELDS = (
    "name",
    "email",
    "phone",
    "mobile",
    "fax",
    "website",
    "address",
    "city",
    "state",
    "postal_code",
    "country",
    "contact_person",
    "tax_id",
    "notes",
)

INACTIVE_STATUSES = ("inactive", "archived")

_STATUS_BADGES = {
    "lead": ("secondary", "Lead"),
    "prospect": ("outline", "Prospect"),
    "active": ("success", "Active"),
    "on_hold": ("secondary", "On Hold"),
    "inactive": ("destructive", "Inactive"),
    "archived": ("outline", "Archived"),
}


def client_status_badge(status: str | None) -> tuple[str, str]:
    """(variant, label) for a client status; unknown statuses render as Active."""
    return _STATUS_BADGES.get(status or "", ("default", "Active"))


def client_status_options() -> list[tuple[str, str]]:
    return [(key, _STATUS_BADGES[key][1]) for key in CLIENT_STATUSES]


def validate_client_payload(payload: dict) -> list[str]:
    """Validate client creation/update payload. Returns list of errors."""
    errors = []
    if not (payload.get("name") or "").strip():
        errors.append("Client name is required.")
    status = (payload.get("status") or "").strip()
    if status and status not in CLIENT_STATUSES:
        errors.append(f"Invalid status. Must be one of: {', '.join(CLIENT_STATUSES)}")
    return errors


def create_client(s: "Session", payload: dict, user: "User") -> "Client":
    from app.ledgerly.modules.clients.models import Client

    status = (payload.get("status") or "").strip() or "active"
    now = datetime.utcnow()
    client = Client(
        user_id=user.id,
        status=status,
        is_active=status not in INACTIVE_STATUSES,
        created_at=now,
        updated_at=now,
        **{f: clean(payload.get(f)) for f in CLIENT_FIELDS},
    )
    s.add(client)
    s.flush()

    record_event(
        s,
        actor=user,
        action="client.create",
        entity_type="Client",
        entity_id=client.id,
        metadata={"name": client.name, "status": client.status},
    )
    return client


def update_client(s: "Session", client: "Client", payload: dict, user: "User") -> "Client":
    changes = {}

    for f in CLIENT_FIELDS:
        new = clean(payload.get(f))
        if f == "name" and not new:
            continue
        old = getattr(client, f)
        if new != old:
            changes[f] = {"old": old, "new": new}
            setattr(client, f, new)

    new_status = (payload.get("status") or "").strip()
    if new_status and new_status != client.status:
        changes["status"] = {"old": client.status, "new": new_status}
        client.status = new_status
        client.is_active = new_status not in INACTIVE_STATUSES

    client.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="client.edit",
        entity_type="Client",
        entity_id=client.id,
        metadata={"name": client.name, "changes": changes},
    )
    return client


def delete_client(s: "Session", client: "Client", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="client.delete",
        entity_type="Client",
        entity_id=client.id,
        metadata={"name": client.name},
    )
    s.delete(client)
