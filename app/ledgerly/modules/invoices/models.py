from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ledgerly.models import Base, new_id

INVOICE_STATUSES = ("draft", "sent", "paid", "overdue")
PAYMENT_METHODS = ("check", "cash", "direct_deposit", "paypal", "venmo", "zelle", "wire_transfer", "other")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'sent', 'paid', 'overdue')", name="invoices_status_check"),
        Index("idx_invoices_user_id", "user_id"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_date", "date"),
        Index("idx_invoices_payment_method", "payment_method"),
        Index("idx_invoices_payment_date", "payment_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    client_id: Mapped[str | None] = mapped_column(ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    invoice_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Invoice")
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    terms: Mapped[str] = mapped_column(String(128), nullable=False, default="Due on receipt")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")

    from_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    from_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    from_business_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    from_website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_owner: Mapped[str | None] = mapped_column(String(255), nullable=True)

    bill_to_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bill_to_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    bill_to_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    bill_to_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bill_to_mobile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bill_to_fax: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # [{id, description, quantity, rate, amount}, ...]
    line_items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    balance_due: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    share_token: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    client = relationship("Client", lazy="selectin")
