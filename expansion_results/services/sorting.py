from __future__ import annotations

import locale
import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, TypeVar

from ..models.result_row import ResultRow, is_numeric_value
from ..models.view_state import (
    BUILD_CYCLE_KEY,
    PaginationState,
    SortConfig,
    SortDirection,
)
from .export import render_value

"""Sort/paginate engine for tabular and pivot views.

- Comparator: numbers compare by subtraction, everything else by locale-aware
  string collation. Equal values keep their input order (sorted() is stable).
- Header clicks cycle ascending -> descending -> unsorted; the pivot view
  cycles back to ascending build-cycle order instead of unsorted.
- Pagination clamps out-of-range pages instead of raising.
"""

__all__ = [
    "compare_values",
    "field_lookup",
    "sort_rows",
    "next_sort_config",
    "next_pivot_sort_config",
    "Page",
    "paginate",
    "clamp_page",
    "change_page_size",
    "column_totals",
]

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def compare_values(a: Any, b: Any) -> int:
    """Three-way compare of two field values (-1, 0, 1)."""
    if a == b:
        return 0
    if is_numeric_value(a) and is_numeric_value(b):
        return _sign(a - b)
    left, right = render_value(a), render_value(b)
    # case-insensitive first; the raw order only breaks ties
    folded = _sign(locale.strcoll(left.casefold(), right.casefold()))
    return folded or _sign(locale.strcoll(left, right))


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def field_lookup(row: Any, key: str) -> Any:
    """Field value by column key for ResultRows, mappings and DTO objects.

    DTO attributes are snake_case; camelCase column keys are converted.
    """
    if isinstance(row, ResultRow):
        return row.field_value(key)
    if isinstance(row, Mapping):
        return row.get(key)
    if hasattr(row, key):
        return getattr(row, key)
    return getattr(row, _snake_case(key), None)


def sort_rows(
    rows: Iterable[T],
    config: SortConfig,
    key_func: Callable[[T, str], Any] | None = None,
) -> list[T]:
    """Return a sorted copy of rows; an inactive config keeps the input order."""
    items = list(rows)
    if not config.is_active:
        return items
    lookup = key_func or field_lookup
    key = config.key
    descending = config.direction is SortDirection.DESC

    def cmp(x: T, y: T) -> int:
        c = compare_values(lookup(x, key), lookup(y, key))
        return -c if descending else c

    return sorted(items, key=cmp_to_key(cmp))


def next_sort_config(current: SortConfig, key: str) -> SortConfig:
    """Header click on a tabular view: asc -> desc -> unsorted."""
    if current.key != key or not current.is_active:
        return SortConfig.ascending(key)
    if current.direction is SortDirection.ASC:
        return SortConfig.descending(key)
    return SortConfig.unsorted()


def next_pivot_sort_config(current: SortConfig, key: str) -> SortConfig:
    """Header click on the pivot view: the third click restores build-cycle order."""
    nxt = next_sort_config(current, key)
    if not nxt.is_active:
        return SortConfig.ascending(BUILD_CYCLE_KEY)
    return nxt


@dataclass(frozen=True)
class Page:
    items: list[Any]  # rows of the current window
    page: int  # 1-based, always within [1, max(1, total_pages)]
    total_pages: int
    start: int  # 0-based offset of the first item
    end: int  # exclusive offset
    total: int

    def range_label(self) -> str:
        if self.total == 0:
            return "No results"
        return f"Showing {self.start + 1}-{self.end} of {self.total} results"


def clamp_page(page: int, total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError(f"page_size must be > 0, got {page_size}")
    last = max(1, math.ceil(max(total, 0) / page_size))
    return min(max(page, 1), last)


def paginate(rows: Sequence[T], page: int, page_size: int) -> Page:
    total = len(rows)
    current = clamp_page(page, total, page_size)
    total_pages = math.ceil(total / page_size)
    start = min((current - 1) * page_size, total)
    end = min(start + page_size, total)
    return Page(
        items=list(rows[start:end]),
        page=current,
        total_pages=total_pages,
        start=start,
        end=end,
        total=total,
    )


def change_page_size(state: PaginationState, page_size: int) -> PaginationState:
    return state.with_page_size(page_size)


def column_totals(rows: Iterable[Any], keys: Sequence[str]) -> dict[str, float]:
    """Sum of the numeric values per key; text and missing values are skipped."""
    totals: dict[str, float] = {k: 0 for k in keys}
    for row in rows:
        for k in keys:
            v = field_lookup(row, k)
            if is_numeric_value(v):
                totals[k] += v
    return totals
