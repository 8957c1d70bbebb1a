"""
Saved-view state: a small filter/sort struct stored as JSON per user per table.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from app.ledgerly.listing.filtering import DateRangeFilter, FilterParams
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import SORT_ORDERS, SortParams

MAX_VIEW_NAME_LENGTH = 50


@dataclass(frozen=True)
class ViewState:
    filters: FilterParams = field(default_factory=FilterParams)
    sort: SortParams = field(default_factory=lambda: SortParams(sort_by=None, sort_order="desc"))

    def to_dict(self) -> dict:
        return {"filters": self.filters.to_dict(), "sort": self.sort.to_dict()}

    @classmethod
    def from_dict(cls, raw: Any) -> "ViewState":
        if not isinstance(raw, Mapping):
            return cls()
        filters_raw = raw.get("filters") if isinstance(raw.get("filters"), Mapping) else {}
        sort_raw = raw.get("sort") if isinstance(raw.get("sort"), Mapping) else {}

        date_range = None
        dr = filters_raw.get("dateRange")
        if isinstance(dr, Mapping):
            date_range = DateRangeFilter(start=dr.get("from") or None, end=dr.get("to") or None)

        filters = FilterParams(
            status=[str(v) for v in (filters_raw.get("status") or []) if v],
            category=[str(v) for v in (filters_raw.get("category") or []) if v],
            date_range=date_range,
            search=filters_raw.get("search") or None,
        )
        order = sort_raw.get("sortOrder")
        sort = SortParams(
            sort_by=sort_raw.get("sortBy") or None,
            sort_order=order if order in SORT_ORDERS else "desc",
        )
        return cls(filters=filters, sort=sort)


def encode_view_state(state: ViewState) -> str:
    return json.dumps(state.to_dict())


def decode_view_state(encoded: str | Mapping | None) -> ViewState:
    """Invalid or missing JSON decodes to the empty default view."""
    if isinstance(encoded, Mapping):
        return ViewState.from_dict(encoded)
    try:
        return ViewState.from_dict(json.loads(encoded or ""))
    except (TypeError, ValueError):
        return ViewState()


def build_url_from_view_state(state: ViewState, base_args: Mapping[str, str] | None = None) -> str:
    params = flat_args(base_args or {})

    if state.sort.sort_by:
        params["sort"] = state.sort.sort_by
        params["order"] = state.sort.sort_order

    f = state.filters
    if f.status:
        params["status"] = ",".join(f.status)
    if f.category:
        params["category"] = ",".join(f.category)
    if f.date_range:
        if f.date_range.start:
            params["date_from"] = f.date_range.start
        if f.date_range.end:
            params["date_to"] = f.date_range.end
    if f.search:
        params["q"] = f.search

    params["page"] = "1"
    return f"?{urlencode(params)}"


def extract_view_state(sort: SortParams, filters: FilterParams) -> ViewState:
    return ViewState(filters=filters, sort=sort)


def validate_view_name(name: str | None) -> str | None:
    """Returns an error message, or None when the name is acceptable."""
    if not name or not name.strip():
        return "View name cannot be empty"
    if len(name) > MAX_VIEW_NAME_LENGTH:
        return f"View name must be {MAX_VIEW_NAME_LENGTH} characters or less"
    return None


def get_view_description(state: ViewState) -> str:
    parts: list[str] = []

    if state.sort.sort_by:
        order = "ascending" if state.sort.sort_order == "asc" else "descending"
        parts.append(f"Sorted by {state.sort.sort_by} ({order})")

    f = state.filters
    if f.status:
        parts.append(f"Status: {', '.join(f.status)}")
    if f.category:
        parts.append(f"Category: {', '.join(f.category)}")
    if f.date_range:
        start, end = f.date_range.start, f.date_range.end
        if start and end:
            parts.append(f"Date: {start} to {end}")
        elif start:
            parts.append(f"Date: from {start}")
        elif end:
            parts.append(f"Date: until {end}")
    if f.search:
        parts.append(f'Search: "{f.search}"')

    return " • ".join(parts) if parts else "No filters applied"
