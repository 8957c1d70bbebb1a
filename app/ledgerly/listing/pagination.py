from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

DEFAULT_PAGE_SIZE = 20
PAGE_SIZE_OPTIONS = (10, 20, 50, 100)
MAX_PAGE_SIZE = max(PAGE_SIZE_OPTIONS)

ELLIPSIS = "ellipsis"


@dataclass(frozen=True)
class PaginationParams:
    page: int
    limit: int


@dataclass(frozen=True)
class PaginationMeta:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool
    start_index: int
    end_index: int


def flat_args(args: Mapping[str, str]) -> dict[str, str]:
    """First value per key; works for plain dicts and werkzeug MultiDicts alike."""
    return {k: args.get(k) or "" for k in args.keys()}


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int((raw or "").strip() or default)
    except ValueError:
        value = default
    return max(1, value)


def parse_pagination_params(args: Mapping[str, str]) -> PaginationParams:
    return PaginationParams(
        page=_positive_int(args.get("page"), 1),
        limit=min(_positive_int(args.get("limit"), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE),
    )


def calculate_pagination_meta(total_items: int, current_page: int, items_per_page: int) -> PaginationMeta:
    total_pages = max(1, math.ceil(total_items / items_per_page))
    safe_page = max(1, min(current_page, total_pages))
    start_index = (safe_page - 1) * items_per_page
    end_index = min(start_index + items_per_page - 1, total_items - 1)
    return PaginationMeta(
        current_page=safe_page,
        total_pages=total_pages,
        total_items=total_items,
        items_per_page=items_per_page,
        has_next_page=safe_page < total_pages,
        has_previous_page=safe_page > 1,
        start_index=start_index,
        end_index=end_index,
    )


def get_range(page: int, limit: int) -> tuple[int, int]:
    """Zero-based, inclusive row range for a page."""
    start = (page - 1) * limit
    return start, start + limit - 1


def apply_pagination(query, page: int, limit: int):
    start, _end = get_range(page, limit)
    return query.offset(start).limit(limit)


def get_page_numbers(current_page: int, total_pages: int, max_visible: int = 7) -> list[int | str]:
    """
    Page links for a pager: first, last, and a window around the current page,
    with ELLIPSIS markers where pages are skipped.
    """
    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))

    half = max_visible // 2
    pages: list[int | str] = [1]

    start = max(2, current_page - half)
    end = min(total_pages - 1, current_page + half)

    if current_page <= half:
        end = max_visible - 1
    elif current_page >= total_pages - half:
        start = total_pages - max_visible + 2

    if start > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages - 1:
        pages.append(ELLIPSIS)

    pages.append(total_pages)
    return pages


def create_pagination_url(
    base_url: str,
    args: Mapping[str, str],
    *,
    page: int | None = None,
    limit: int | None = None,
) -> str:
    params = flat_args(args)
    if page is not None:
        params["page"] = str(page)
    if limit is not None:
        params["limit"] = str(limit)
    qs = urlencode(params)
    return f"{base_url}?{qs}" if qs else base_url
