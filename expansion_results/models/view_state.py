from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

"""Per-view sort and pagination state.

These are owned by a single view session and recomputed from user input; they
are never persisted.
"""

__all__ = [
    "PAGE_SIZE_OPTIONS",
    "BUILD_CYCLE_KEY",
    "SortDirection",
    "SortConfig",
    "PaginationState",
]

PAGE_SIZE_OPTIONS: tuple[int, ...] = (10, 20, 25, 50, 100)
BUILD_CYCLE_KEY = "buildCycle"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"
    UNSET = "unset"


@dataclass(frozen=True)
class SortConfig:
    key: str | None = None
    direction: SortDirection = SortDirection.UNSET

    @staticmethod
    def unsorted() -> SortConfig:
        return SortConfig(None, SortDirection.UNSET)

    @staticmethod
    def ascending(key: str) -> SortConfig:
        return SortConfig(key, SortDirection.ASC)

    @staticmethod
    def descending(key: str) -> SortConfig:
        return SortConfig(key, SortDirection.DESC)

    @property
    def is_active(self) -> bool:
        return self.key is not None and self.direction is not SortDirection.UNSET

    def indicator(self, key: str) -> str:
        """Header marker for a column: unsorted, ascending or descending."""
        if not self.is_active or self.key != key:
            return " ↕"
        return " ▲" if self.direction is SortDirection.ASC else " ▼"


@dataclass(frozen=True)
class PaginationState:
    page: int = 1
    page_size: int = 20

    def __post_init__(self) -> None:
        if self.page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(
                f"page_size must be one of {PAGE_SIZE_OPTIONS}, got {self.page_size}"
            )
        if self.page < 1:
            object.__setattr__(self, "page", 1)

    def total_pages(self, total: int) -> int:
        return math.ceil(max(total, 0) / self.page_size)

    def after_total_change(self, total: int) -> PaginationState:
        """Clamp the page after the row count changed (e.g. a filter shrank the set)."""
        last = max(1, self.total_pages(total))
        return replace(self, page=min(max(self.page, 1), last))

    def with_page_size(self, page_size: int) -> PaginationState:
        return PaginationState(page=1, page_size=page_size)

    def go_to(self, page: int, total: int) -> PaginationState:
        return replace(self, page=page).after_total_change(total)
