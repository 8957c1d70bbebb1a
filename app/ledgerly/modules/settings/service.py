from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from werkzeug.utils import secure_filename

from app.ledgerly.audit import record_event
from app.ledgerly.models import BusinessSettings
from app.ledgerly.utils import clean

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.storage import Storage


BUSINESS_FIELDS = (
    "business_name",
    "business_number",
    "business_owner",
    "business_address",
    "business_email",
    "business_phone",
    "business_mobile",
    "business_website",
    "default_invoice_note",
    "default_email_subject",
    "default_email_message",
    "email_signature",
)

# Raster formats only: an SVG or HTML "logo" served from the public bucket could run script.
LOGO_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def logo_content_type(filename: str | None) -> str | None:
    """Image mimetype for an allowed logo filename, else None."""
    if not filename or "." not in filename:
        return None
    return LOGO_CONTENT_TYPES.get(filename.rsplit(".", 1)[1].lower())


def get_or_create_business_settings(s: "Session", user: "User") -> BusinessSettings:
    settings = s.query(BusinessSettings).filter(BusinessSettings.user_id == user.id).one_or_none()
    if settings is None:
        settings = BusinessSettings(user_id=user.id)
        s.add(settings)
        s.flush()
    return settings


def validate_business_settings_payload(payload: dict) -> list[str]:
    errors = []
    email = (payload.get("business_email") or "").strip()
    if email and "@" not in email:
        errors.append("Business email must be a valid email address.")
    subject = (payload.get("default_email_subject") or "").strip()
    if len(subject) > 255:
        errors.append("Email subject must be 255 characters or less.")
    return errors


def update_business_settings(s: "Session", settings: BusinessSettings, payload: dict, user: "User") -> BusinessSettings:
    changes = {}
    for f in BUSINESS_FIELDS:
        new = clean(payload.get(f))
        old = getattr(settings, f)
        if new != old:
            changes[f] = {"old": old, "new": new}
            setattr(settings, f, new)
    settings.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="business_settings.edit",
        entity_type="BusinessSettings",
        entity_id=settings.id,
        metadata={"changes": sorted(changes)},
    )
    return settings


def render_email_subject(settings: BusinessSettings | None, invoice_number: str) -> str:
    template = (settings.default_email_subject if settings else None) or "Invoice {invoice_number}"
    return template.replace("{invoice_number}", invoice_number)


def build_logo_storage_key(user_id: str, filename: str, upload_date: date | None = None) -> str:
    if upload_date is None:
        upload_date = date.today()
    content_type = logo_content_type(filename)
    if content_type is None:
        raise ValueError(f"Unsupported logo file type: {filename!r}")
    safe_filename = secure_filename(filename)
    if logo_content_type(safe_filename) != content_type:
        # secure_filename can strip a non-ASCII stem down to the bare extension.
        safe_filename = "logo." + filename.rsplit(".", 1)[1].lower()
    return f"{user_id}/logo-{upload_date.isoformat()}-{safe_filename}"


def upload_logo(
    s: "Session",
    settings: BusinessSettings,
    file_bytes: bytes,
    filename: str,
    user: "User",
    storage: "Storage",
    bucket: str,
) -> str:
    """
    Store a logo in the public bucket and point the settings row at its public URL.
    The stored content type comes from the file extension, never from the client.
    """
    key = build_logo_storage_key(user.id, filename)
    key = storage.put_for_user(bucket, user.id, key, file_bytes, content_type=logo_content_type(key))
    settings.logo_url = storage.public_url(bucket, key)
    settings.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="business_settings.logo_upload",
        entity_type="BusinessSettings",
        entity_id=settings.id,
        metadata={"key": key, "size_bytes": len(file_bytes)},
    )
    return settings.logo_url
