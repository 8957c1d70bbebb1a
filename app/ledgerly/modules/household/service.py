from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from app.ledgerly.audit import record_event
from app.ledgerly.utils import AmountOutOfRange, money, parse_decimal

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ledgerly.models import User
    from app.ledgerly.modules.household.models import HouseholdSettings


PERCENTAGE_FIELDS = (
    "rent_business_percentage",
    "utilities_business_percentage",
    "internet_business_percentage",
)
MONTHLY_FIELDS = ("monthly_rent", "monthly_utilities", "monthly_internet")
SQUARE_FOOT_FIELDS = ("total_home_square_feet", "office_square_feet")
# Integer column limit.
MAX_SQUARE_FEET = 2**31 - 1


@dataclass(frozen=True)
class HouseholdEstimate:
    square_footage_percentage: Decimal | None
    rent: Decimal
    utilities: Decimal
    internet: Decimal

    @property
    def total(self) -> Decimal:
        return money(self.rent + self.utilities + self.internet)


def square_footage_percentage(total_sq_ft: int | None, office_sq_ft: int | None) -> Decimal | None:
    """office / total × 100 to one decimal; None when either side is missing or zero."""
    if not total_sq_ft or not office_sq_ft:
        return None
    pct = Decimal(office_sq_ft) / Decimal(total_sq_ft) * Decimal("100")
    return pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def _monthly_deduction(amount: Decimal | None, percentage: Decimal | None) -> Decimal:
    if not amount or not percentage:
        return Decimal("0.00")
    return money(amount * percentage / Decimal("100"))


def estimate_household_deductions(settings: "HouseholdSettings | None") -> HouseholdEstimate:
    if settings is None:
        zero = Decimal("0.00")
        return HouseholdEstimate(square_footage_percentage=None, rent=zero, utilities=zero, internet=zero)
    return HouseholdEstimate(
        square_footage_percentage=square_footage_percentage(settings.total_home_square_feet, settings.office_square_feet),
        rent=_monthly_deduction(settings.monthly_rent, settings.rent_business_percentage),
        utilities=_monthly_deduction(settings.monthly_utilities, settings.utilities_business_percentage),
        internet=_monthly_deduction(settings.monthly_internet, settings.internet_business_percentage),
    )


def _parse_int(raw: str | None) -> int | None:
    s = (raw or "").strip()
    if not s:
        return None
    return int(s)


def validate_household_payload(payload: dict) -> list[str]:
    errors = []
    for f in PERCENTAGE_FIELDS:
        label = f.replace("_business_percentage", "").capitalize()
        try:
            pct = parse_decimal(payload.get(f), default=Decimal("0"))
            if not (Decimal("0") <= pct <= Decimal("100")):
                errors.append(f"{label} percentage must be between 0 and 100.")
        except ValueError:
            errors.append(f"{label} percentage must be a number.")
    for f in MONTHLY_FIELDS:
        try:
            amount = parse_decimal(payload.get(f))
            if amount is not None and amount < 0:
                errors.append(f"{f.replace('_', ' ').capitalize()} cannot be negative.")
        except AmountOutOfRange:
            errors.append(f"{f.replace('_', ' ').capitalize()} is too large.")
        except ValueError:
            errors.append(f"{f.replace('_', ' ').capitalize()} must be a number.")
    for f in SQUARE_FOOT_FIELDS:
        try:
            value = _parse_int(payload.get(f))
            if value is not None and value < 0:
                errors.append("Square footage cannot be negative.")
            elif value is not None and value > MAX_SQUARE_FEET:
                errors.append("Square footage is too large.")
        except ValueError:
            errors.append("Square footage must be a whole number.")
    return errors


def get_household_settings(s: "Session", user: "User") -> "HouseholdSettings | None":
    from app.ledgerly.modules.household.models import HouseholdSettings

    return s.query(HouseholdSettings).filter(HouseholdSettings.user_id == user.id).one_or_none()


def upsert_household_settings(s: "Session", payload: dict, user: "User") -> "HouseholdSettings":
    from app.ledgerly.modules.household.models import HouseholdSettings

    settings = get_household_settings(s, user)
    created = settings is None
    if settings is None:
        settings = HouseholdSettings(user_id=user.id, created_at=datetime.utcnow())
        s.add(settings)

    for f in PERCENTAGE_FIELDS:
        setattr(settings, f, parse_decimal(payload.get(f), default=Decimal("0")))
    for f in MONTHLY_FIELDS:
        value = parse_decimal(payload.get(f))
        setattr(settings, f, money(value) if value is not None else None)
    for f in SQUARE_FOOT_FIELDS:
        setattr(settings, f, _parse_int(payload.get(f)))
    settings.updated_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action="household_settings.create" if created else "household_settings.edit",
        entity_type="HouseholdSettings",
        entity_id=settings.id,
        metadata={f: getattr(settings, f) for f in PERCENTAGE_FIELDS},
    )
    return settings
