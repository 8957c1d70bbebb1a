from __future__ import annotations

import calendar
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

from app.ledgerly.listing.pagination import flat_args


@dataclass(frozen=True)
class DateRangeFilter:
    start: str | None = None
    end: str | None = None

    def to_dict(self) -> dict:
        return {"from": self.start, "to": self.end}


@dataclass(frozen=True)
class FilterParams:
    status: list[str] = field(default_factory=list)
    category: list[str] = field(default_factory=list)
    date_range: DateRangeFilter | None = None
    search: str | None = None

    def to_dict(self) -> dict:
        out: dict = {}
        if self.status:
            out["status"] = list(self.status)
        if self.category:
            out["category"] = list(self.category)
        if self.date_range is not None:
            out["dateRange"] = self.date_range.to_dict()
        if self.search:
            out["search"] = self.search
        return out


DATE_PRESET_LABELS = {
    "today": "Today",
    "yesterday": "Yesterday",
    "last_7_days": "Last 7 Days",
    "last_30_days": "Last 30 Days",
    "last_90_days": "Last 90 Days",
    "this_month": "This Month",
    "last_month": "Last Month",
    "this_quarter": "This Quarter",
    "last_quarter": "Last Quarter",
    "this_year": "This Year",
    "last_year": "Last Year",
}


def _split_csv(raw: str | None) -> list[str]:
    return [v for v in (raw or "").split(",") if v]


def parse_filter_params(args: Mapping[str, str], *, tz: str | None = None, today: date | None = None) -> FilterParams:
    status = _split_csv(args.get("status"))
    category = _split_csv(args.get("category"))

    date_from = (args.get("date_from") or "").strip() or None
    date_to = (args.get("date_to") or "").strip() or None
    date_preset = (args.get("date_preset") or "").strip()

    date_range: DateRangeFilter | None = None
    if date_preset:
        date_range = get_date_range_from_preset(date_preset, tz=tz, today=today)
    elif date_from or date_to:
        date_range = DateRangeFilter(start=date_from, end=date_to)

    search = (args.get("q") or "").strip() or None
    return FilterParams(status=status, category=category, date_range=date_range, search=search)


def today_in(tz: str | None) -> date:
    if tz:
        return datetime.now(ZoneInfo(tz)).date()
    return date.today()


def _month_bounds(d: date) -> tuple[date, date]:
    last_day = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=1), d.replace(day=last_day)


def _shift_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _quarter_bounds(d: date) -> tuple[date, date]:
    first_month = ((d.month - 1) // 3) * 3 + 1
    start = date(d.year, first_month, 1)
    _, end = _month_bounds(date(d.year, first_month + 2, 1))
    return start, end


def get_date_range_from_preset(preset: str, *, tz: str | None = None, today: date | None = None) -> DateRangeFilter:
    """
    Resolve a named preset into an inclusive ISO date range.
    Unknown presets give an empty range rather than an error.
    """
    now = today or today_in(tz)

    if preset == "today":
        start, end = now, now
    elif preset == "yesterday":
        start = end = now - timedelta(days=1)
    elif preset == "last_7_days":
        start, end = now - timedelta(days=7), now
    elif preset == "last_30_days":
        start, end = now - timedelta(days=30), now
    elif preset == "last_90_days":
        start, end = now - timedelta(days=90), now
    elif preset == "this_month":
        start, end = _month_bounds(now)
    elif preset == "last_month":
        start, end = _month_bounds(_shift_months(now, -1))
    elif preset == "this_quarter":
        start, end = _quarter_bounds(now)
    elif preset == "last_quarter":
        start, end = _quarter_bounds(_shift_months(now, -3))
    elif preset == "this_year":
        start, end = date(now.year, 1, 1), date(now.year, 12, 31)
    elif preset == "last_year":
        start, end = date(now.year - 1, 1, 1), date(now.year - 1, 12, 31)
    else:
        return DateRangeFilter(start=None, end=None)

    return DateRangeFilter(start=start.isoformat(), end=end.isoformat())


def _parse_iso(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def apply_filters(
    query,
    model,
    filters: FilterParams,
    *,
    status_column: str | None = "status",
    category_column: str | None = "category",
    date_column: str | None = "date",
):
    columns = model.__table__.columns

    if filters.status and status_column and status_column in columns:
        query = query.filter(getattr(model, status_column).in_(filters.status))

    if filters.category and category_column and category_column in columns:
        query = query.filter(getattr(model, category_column).in_(filters.category))

    if filters.date_range and date_column and date_column in columns:
        col = getattr(model, date_column)
        start = _parse_iso(filters.date_range.start)
        end = _parse_iso(filters.date_range.end)
        if start:
            query = query.filter(col >= start)
        if end:
            query = query.filter(col <= end)

    return query


def build_filter_url(args: Mapping[str, str], key: str, value: str | Iterable[str] | None) -> str:
    params = flat_args(args)
    values = [value] if isinstance(value, str) else (list(value) if value is not None else None)
    if not values:
        params.pop(key, None)
    else:
        params[key] = ",".join(values)
    # Changing a filter always goes back to the first page.
    params["page"] = "1"
    return f"?{urlencode(params)}"


def toggle_filter_value(current: list[str], value: str) -> list[str]:
    if value in current:
        return [v for v in current if v != value]
    return [*current, value]


def clear_all_filters(args: Mapping[str, str], preserve_keys: Iterable[str] = ("limit",)) -> str:
    params: dict[str, str] = {}
    for key in preserve_keys:
        v = args.get(key)
        if v:
            params[key] = v
    params["page"] = "1"
    return f"?{urlencode(params)}"


def get_active_filter_count(filters: FilterParams) -> int:
    count = 0
    if filters.status:
        count += 1
    if filters.category:
        count += 1
    if filters.date_range and (filters.date_range.start or filters.date_range.end):
        count += 1
    if filters.search:
        count += 1
    return count
