"""Parsing of storefront query-string parameters into filter requests."""

import math
from collections.abc import Iterable

from storefront.config import DEFAULT_PAGE_SIZE, MAX_OFFSET, MAX_PAGE_SIZE
from storefront.models.filters import MAX_PAGE, FilterRequest

RESERVED_PARAMS = {
    "category",
    "subcategories",
    "brands",
    "priceMin",
    "priceMax",
    "search",
    "query",
    "sort",
    "page",
    "offset",
    "perPage",
    "limit",
}


def _split(values: list[str]) -> list[str]:
    """Flatten repeated and comma-joined values."""
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def _to_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _to_int(value: str | None) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None


def parse_filter_request(items: Iterable[tuple[str, str]]) -> FilterRequest:
    """
    Build a FilterRequest from query parameters.

    Args:
        items: (key, value) pairs, repeated keys allowed

    Returns:
        FilterRequest; every non-reserved key is a specification selection.
        Malformed numbers are ignored rather than rejected.
    """
    params: dict[str, list[str]] = {}
    for key, value in items:
        params.setdefault(key, []).append(value)

    def first(*keys: str) -> str | None:
        for key in keys:
            if params.get(key):
                return params[key][0]
        return None

    limit = _to_int(first("perPage", "limit")) or DEFAULT_PAGE_SIZE
    page = _to_int(first("page"))
    offset = _to_int(first("offset")) or 0
    # Out-of-range positions are treated as absent
    if page is not None and page > MAX_PAGE:
        page = None
    if offset > MAX_OFFSET:
        offset = 0

    specifications = {}
    for key, values in params.items():
        if key in RESERVED_PARAMS:
            continue
        selections = _split(values)
        if selections:
            specifications[key] = selections

    return FilterRequest(
        category=first("category"),
        subcategories=_split(params.get("subcategories", [])),
        brands=_split(params.get("brands", [])),
        price_min=_to_float(first("priceMin")),
        price_max=_to_float(first("priceMax")),
        search=first("search", "query"),
        sort=first("sort"),
        offset=max(offset, 0),
        limit=min(max(limit, 1), MAX_PAGE_SIZE),
        page=page if page and page >= 1 else None,
        specifications=specifications,
    )
