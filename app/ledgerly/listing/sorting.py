from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

from app.ledgerly.listing.pagination import flat_args

logger = logging.getLogger(__name__)

SORT_ORDERS = ("asc", "desc")


@dataclass(frozen=True)
class SortParams:
    sort_by: str | None
    sort_order: str

    def to_dict(self) -> dict:
        return {"sortBy": self.sort_by, "sortOrder": self.sort_order}


def parse_sort_params(
    args: Mapping[str, str],
    default_sort_by: str = "created_at",
    default_sort_order: str = "desc",
) -> SortParams:
    sort_by = (args.get("sort") or "").strip() or default_sort_by
    sort_order = (args.get("order") or "").strip() or default_sort_order
    if sort_order not in SORT_ORDERS:
        return SortParams(sort_by=sort_by, sort_order=default_sort_order)
    return SortParams(sort_by=sort_by, sort_order=sort_order)


def _is_text_column(column: str) -> bool:
    return "name" in column or "email" in column


def build_sort_url(
    args: Mapping[str, str],
    sort_by: str,
    current_sort_by: str | None,
    current_sort_order: str,
) -> str:
    """
    Query string for clicking a column header: the same column flips the
    order, a new column starts ascending for name/email and descending otherwise.
    """
    params = flat_args(args)
    if sort_by == current_sort_by:
        params["order"] = "desc" if current_sort_order == "asc" else "asc"
    else:
        params["sort"] = sort_by
        params["order"] = "asc" if _is_text_column(sort_by) else "desc"
    params["page"] = "1"
    return f"?{urlencode(params)}"


def get_sort_indicator(column: str, current_sort_by: str | None, current_sort_order: str) -> str | None:
    if column != current_sort_by:
        return None
    return current_sort_order


def resolve_sort_column(model, sort_by: str, column_map: Mapping[str, str] | None = None):
    name = (column_map or {}).get(sort_by) or sort_by
    column = getattr(model, name, None) if name in model.__table__.columns else None
    if column is None:
        logger.debug("Ignoring unknown sort column %r for %s", sort_by, getattr(model, "__name__", model))
        return None
    return column


def apply_sorting(
    query,
    model,
    sort_by: str | None,
    sort_order: str,
    column_map: Mapping[str, str] | None = None,
    fallback: str = "created_at",
):
    column = resolve_sort_column(model, sort_by or fallback, column_map)
    if column is None:
        column = resolve_sort_column(model, fallback)
    if column is None:
        return query
    ordered = column.asc() if sort_order == "asc" else column.desc()
    # Secondary key keeps paging stable when the sort column has ties.
    return query.order_by(ordered, model.id.asc())


INVOICE_COLUMN_MAP = {
    "client": "bill_to_name",
    "amount": "total",
    "status": "status",
    "date": "date",
    "invoice_number": "invoice_number",
    "created": "created_at",
}

EXPENSE_COLUMN_MAP = {
    "date": "date",
    "description": "description",
    "merchant": "merchant",
    "category": "category",
    "amount": "total",
    "created": "created_at",
}

CLIENT_COLUMN_MAP = {
    "name": "name",
    "contact": "contact_person",
    "email": "email",
    "phone": "phone",
    "status": "status",
    "created": "created_at",
}

MILEAGE_COLUMN_MAP = {
    "date": "date",
    "purpose": "purpose",
    "miles": "miles",
    "rate": "rate_per_mile",
    "deduction": "total",
    "created": "created_at",
}

TEMPLATE_COLUMN_MAP = {
    "name": "name",
    "description": "description",
    "rate": "rate",
    "quantity": "quantity",
    "created": "created_at",
}
