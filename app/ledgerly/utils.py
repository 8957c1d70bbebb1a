from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


class AmountOutOfRange(ValueError):
    pass


def money(value: Decimal | int | float | str | None) -> Decimal:
    """Round to cents, half-up. None counts as zero."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_decimal(
    raw: str | None, *, default: Decimal | None = None, max_abs: Decimal = MAX_AMOUNT
) -> Decimal | None:
    """
    Parse a form value like '1,250.50' or '$12'. Blank gives `default`; junk raises
    ValueError and anything beyond `max_abs` raises AmountOutOfRange.
    """
    if raw is None:
        return default
    s = str(raw).strip().replace(",", "").lstrip("$")
    if not s:
        return default
    try:
        value = Decimal(s)
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {raw!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a number: {raw!r}")
    check_amount(value, max_abs)
    return value


def check_amount(value: Decimal, max_abs: Decimal = MAX_AMOUNT) -> Decimal:
    if abs(value) > max_abs:
        raise AmountOutOfRange(f"{value} exceeds {max_abs}")
    return value


def parse_date(s: str | None) -> date | None:
    """Parse YYYY-MM-DD date string."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def clean(raw: str | None) -> str | None:
    """Strip a form value; blank becomes None."""
    return (raw or "").strip() or None


def format_currency(amount: Decimal | int | float | None) -> str:
    return f"{money(amount):,.2f}"
