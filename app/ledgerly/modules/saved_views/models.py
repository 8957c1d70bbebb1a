from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.ledgerly.models import Base, new_id

VIEW_TABLES = ("invoices", "expenses", "clients", "mileage", "line_item_templates")


class SavedView(Base):
    __tablename__ = "saved_views"
    __table_args__ = (
        UniqueConstraint("user_id", "table_name", "name", name="uq_saved_views_user_table_name"),
        CheckConstraint(
            "table_name IN ('invoices', 'expenses', 'clients', 'mileage', 'line_item_templates')",
            name="saved_views_table_name_check",
        ),
        CheckConstraint("length(name) > 0 AND length(name) <= 50", name="saved_views_name_length_check"),
        Index("idx_saved_views_user_table", "user_id", "table_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False)
    view_state: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
