from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.ledgerly.models import Base, new_id


class MileageRecord(Base):
    __tablename__ = "mileage"
    __table_args__ = (
        Index("idx_mileage_user_id", "user_id"),
        Index("idx_mileage_date", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    purpose: Mapped[str] = mapped_column(String(255), nullable=False)
    miles: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rate_per_mile: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.67"))
    # miles × rate_per_mile
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
