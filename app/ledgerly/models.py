from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    profile: Mapped["Profile | None"] = relationship(
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Profile(Base):
    """Display details for a user. Created alongside the user at signup."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped[User] = relationship(back_populates="profile")


class BusinessSettings(Base):
    __tablename__ = "business_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    business_owner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    business_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    business_mobile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    business_website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_invoice_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # {invoice_number} is substituted when the subject is rendered
    default_email_subject: Mapped[str | None] = mapped_column(String(255), nullable=True, default="Invoice {invoice_number}")
    default_email_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        default="Please find attached your invoice. If you have any questions, feel free to reach out.",
    )
    email_signature: Mapped[str | None] = mapped_column(Text, nullable=True)


class AuditEvent(Base):
    """
    Append-only activity log.
    Rows are never updated; entity_id is a string so any primary key fits.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "invoice.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Invoice"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.ledgerly.modules.clients.models import Client  # noqa: E402,F401
from app.ledgerly.modules.invoices.models import Invoice  # noqa: E402,F401
from app.ledgerly.modules.expenses.models import Expense  # noqa: E402,F401
from app.ledgerly.modules.mileage.models import MileageRecord  # noqa: E402,F401
from app.ledgerly.modules.line_item_templates.models import LineItemTemplate  # noqa: E402,F401
from app.ledgerly.modules.household.models import HouseholdSettings  # noqa: E402,F401
from app.ledgerly.modules.saved_views.models import SavedView  # noqa: E402,F401
