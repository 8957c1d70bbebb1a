from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.ledgerly.models import Base, new_id


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint(
            "business_use_percentage >= 0 AND business_use_percentage <= 100",
            name="expenses_business_use_percentage_check",
        ),
        Index("idx_expenses_user_id", "user_id"),
        Index("idx_expenses_date", "date"),
        Index("idx_expenses_category", "category"),
        Index("idx_expenses_is_tax_deductible", "is_tax_deductible"),
        Index("idx_expenses_tax_category", "tax_category"),
        Index("idx_expenses_original_expense_id", "original_expense_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    merchant: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # storage key inside the receipts bucket: <user_id>/...
    receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_tax_deductible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    business_use_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("100"))
    tax_category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # total × business_use_percentage / 100, kept in step by the service layer
    deductible_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    is_return: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_expense_id: Mapped[str | None] = mapped_column(
        ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True
    )
