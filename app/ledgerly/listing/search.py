from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from sqlalchemy import or_


@dataclass(frozen=True)
class SearchParams:
    query: str


def parse_search_params(args: Mapping[str, str]) -> SearchParams:
    return SearchParams(query=(args.get("q") or args.get("search") or "").strip())


def create_search_url(
    base_url: str,
    args: Mapping[str, str],
    query: str,
    preserve_params: Iterable[str] = (),
) -> str:
    params: dict[str, str] = {}
    for name in preserve_params:
        v = args.get(name)
        if v:
            params[name] = v
    if query.strip():
        params["q"] = query.strip()
    if "page" in params:
        params["page"] = "1"
    qs = urlencode(params)
    return f"{base_url}?{qs}" if qs else base_url


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_search(query, model, term: str, fields: Sequence[str]):
    """OR together a case-insensitive substring match over `fields`."""
    term = (term or "").strip()
    if not term or not fields:
        return query
    like = f"%{_escape_like(term)}%"
    clauses = [getattr(model, f).ilike(like, escape="\\") for f in fields]
    return query.filter(or_(*clauses))


def normalize_query(query: str) -> str:
    return re.sub(r"\s+", " ", query.lower().strip())


def matches_search(text: str, query: str) -> bool:
    if not query.strip():
        return True
    return normalize_query(query) in normalize_query(text)


def filter_by_search(items: Iterable[Any], query: str, fields: Sequence[str]) -> list[Any]:
    items = list(items)
    if not query.strip():
        return items
    return [item for item in items if any(_field_matches(item, f, query) for f in fields)]


def _field_value(item: Any, field_name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(field_name)
    return getattr(item, field_name, None)


def _field_matches(item: Any, field_name: str, query: str) -> bool:
    value = _field_value(item, field_name)
    if value is None:
        return False
    return matches_search(str(value), query)


def highlight_search_term(text: str, term: str) -> list[tuple[str, bool]]:
    """
    Split `text` into (fragment, is_match) pairs for rendering highlights.
    """
    if not term.strip() or not text:
        return [(text, False)]
    parts = re.split(f"({re.escape(term)})", text, flags=re.IGNORECASE)
    out: list[tuple[str, bool]] = []
    for i, part in enumerate(parts):
        if not part:
            continue
        out.append((part, i % 2 == 1))
    return out


def calculate_search_score(
    text: str,
    query: str,
    *,
    exact_match_boost: float = 2.0,
    starts_with_boost: float = 1.5,
) -> float:
    if not query.strip() or not text:
        return 0.0

    t = normalize_query(text)
    q = normalize_query(query)

    if t == q:
        return 1.0 * exact_match_boost
    if t.startswith(q):
        return 0.8 * starts_with_boost
    if q in t:
        return 0.5

    words = t.split(" ")
    query_words = q.split(" ")
    matching = sum(1 for qw in query_words if any(w.startswith(qw) for w in words))
    if matching:
        return matching / len(query_words) * 0.3
    return 0.0


def sort_by_relevance(
    items: Iterable[Any],
    query: str,
    fields: Sequence[str],
    **score_options: float,
) -> list[Any]:
    items = list(items)
    if not query.strip():
        return items

    def score(item: Any) -> float:
        values = [_field_value(item, f) for f in fields]
        return max(
            (calculate_search_score(str(v), query, **score_options) for v in values if v is not None),
            default=0.0,
        )

    # sorted() is stable, so equal scores keep their original order
    return sorted(items, key=score, reverse=True)
