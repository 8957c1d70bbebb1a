from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.ledgerly.listing.filtering import FilterParams, apply_filters, get_active_filter_count, parse_filter_params
from app.ledgerly.listing.pagination import (
    PaginationMeta,
    apply_pagination,
    calculate_pagination_meta,
    get_page_numbers,
    parse_pagination_params,
)
from app.ledgerly.listing.search import apply_search, parse_search_params
from app.ledgerly.listing.sorting import SortParams, apply_sorting, parse_sort_params
from app.ledgerly.listing.views import ViewState, extract_view_state


@dataclass(frozen=True)
class TableConfig:
    """How one table page maps query parameters onto its model."""

    table_name: str
    search_fields: tuple[str, ...]
    column_map: Mapping[str, str] = field(default_factory=dict)
    default_sort: str = "created_at"
    default_order: str = "desc"
    status_column: str | None = None
    category_column: str | None = None
    date_column: str | None = None


@dataclass
class ListResult:
    items: list[Any]
    pagination: PaginationMeta
    page_numbers: list[int | str]
    limit: int
    sort: SortParams
    filters: FilterParams
    search: str

    @property
    def view_state(self) -> ViewState:
        return extract_view_state(self.sort, self.filters)

    @property
    def active_filter_count(self) -> int:
        return get_active_filter_count(self.filters)


def build_list(query, model, config: TableConfig, args: Mapping[str, str], *, tz: str | None = None) -> ListResult:
    """
    Apply search, filters, sorting and pagination from `args` to an
    already owner-scoped `query`.
    """
    paging = parse_pagination_params(args)
    search = parse_search_params(args).query
    sort = parse_sort_params(args, config.default_sort, config.default_order)
    parsed = parse_filter_params(args, tz=tz)
    filters = FilterParams(
        status=parsed.status,
        category=parsed.category,
        date_range=parsed.date_range,
        search=search or None,
    )

    query = apply_filters(
        query,
        model,
        filters,
        status_column=config.status_column,
        category_column=config.category_column,
        date_column=config.date_column,
    )
    query = apply_search(query, model, search, config.search_fields)

    total = query.order_by(None).count()
    meta = calculate_pagination_meta(total, paging.page, paging.limit)

    query = apply_sorting(query, model, sort.sort_by, sort.sort_order, config.column_map, fallback=config.default_sort)
    items = apply_pagination(query, meta.current_page, paging.limit).all()

    return ListResult(
        items=items,
        pagination=meta,
        page_numbers=get_page_numbers(meta.current_page, meta.total_pages),
        limit=paging.limit,
        sort=sort,
        filters=filters,
        search=search,
    )
