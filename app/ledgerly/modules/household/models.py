from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.ledgerly.models import Base, new_id


class HouseholdSettings(Base):
    __tablename__ = "household_settings"
    __table_args__ = (
        CheckConstraint(
            "rent_business_percentage >= 0 AND rent_business_percentage <= 100 AND "
            "utilities_business_percentage >= 0 AND utilities_business_percentage <= 100 AND "
            "internet_business_percentage >= 0 AND internet_business_percentage <= 100",
            name="household_settings_valid_percentages",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    rent_business_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    utilities_business_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    internet_business_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))

    monthly_rent: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_utilities: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_internet: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    total_home_square_feet: Mapped[int | None] = mapped_column(Integer, nullable=True)
    office_square_feet: Mapped[int | None] = mapped_column(Integer, nullable=True)
