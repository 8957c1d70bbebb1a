"""
Activity log for tenant-owned records.

Every service mutation appends one `AuditEvent`. Events are written in the
caller's session so they commit (or roll back) with the change they describe.
"""
import json
import logging
from decimal import Decimal
from typing import Any

from flask import g, has_request_context
from sqlalchemy.orm import Session

from app.ledgerly.models import AuditEvent, User

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    # Decimals, dates and UUIDs all land here.
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    return json.dumps(metadata, sort_keys=True, default=_encode)


def current_request_id() -> str | None:
    if not has_request_context():
        return None
    return getattr(g, "request_id", None)


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    event = AuditEvent(action=action, entity_type=entity_type, entity_id=entity_id, reason=reason)
    event.request_id = request_id or current_request_id()
    if actor is not None:
        event.actor_user_id = actor.id
        event.actor_user_email = actor.email
    event.metadata_json = dump_metadata(metadata)
    s.add(event)
    logger.debug("audit %s %s:%s actor=%s", action, entity_type, entity_id, event.actor_user_email)
    return event
