from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .metric import MetricDescriptor

"""ResultRow / ResultSet models.

A ResultRow is the canonical flat record of one solver result: which technology
(candidate unit combination) was evaluated in which build cycle and year, the
solver's status text, and a bag of named metric values. Rows are immutable for
the lifetime of a view; pivot/sort/pagination state is derived from them.
"""

__all__ = [
    "MetricValue",
    "MetricBag",
    "ResultRow",
    "ResultSet",
    "is_numeric_value",
]

MetricValue = Union[int, float, str, None]

SELECTED_MARKER = "Selected"


def is_numeric_value(value: Any) -> bool:
    """Return True for int/float values (bool is not a metric number)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class MetricBag(Mapping[str, MetricValue]):
    """Read-only mapping of metric name -> numeric or text value.

    Metric sets differ per result-set type and are extended by data, so the bag
    is open-ended; the value's own type (number vs str) is the tag.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, MetricValue] | None = None) -> None:
        self._values: dict[str, MetricValue] = dict(values or {})

    def __getitem__(self, name: str) -> MetricValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:  # pragma: no cover (debug aid)
        return f"MetricBag({self._values!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MetricBag):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._values.items(), key=lambda kv: kv[0])))

    def numeric(self, name: str) -> int | float | None:
        value = self._values.get(name)
        return value if is_numeric_value(value) else None

    def text(self, name: str) -> str | None:
        value = self._values.get(name)
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ResultRow:
    """Single flat result record.

    `status` is free text; the solver marks chosen technologies with a status
    containing "Selected" (e.g. "Selected 1 Units").
    """
    technology: str  # candidate / unit combination identifier
    build_cycle: int  # >= 0
    status: str
    year: int
    metrics: MetricBag = field(default_factory=MetricBag)

    def __post_init__(self) -> None:
        if self.build_cycle < 0:
            raise ValueError(f"build_cycle must be >= 0, got {self.build_cycle}")
        if not isinstance(self.metrics, MetricBag):
            object.__setattr__(self, "metrics", MetricBag(self.metrics))

    @property
    def is_selected(self) -> bool:
        return SELECTED_MARKER in (self.status or "")

    def get(self, name: str) -> MetricValue:
        return self.metrics.get(name)

    def field_value(self, key: str) -> Any:
        """Lookup used by the sort engine: fixed fields by camelCase key, then metrics."""
        if key == "technology":
            return self.technology
        if key == "buildCycle":
            return self.build_cycle
        if key == "status":
            return self.status
        if key == "year":
            return self.year
        return self.metrics.get(key)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "technology": self.technology,
            "buildCycle": self.build_cycle,
            "status": self.status,
            "year": self.year,
        }
        out.update(self.metrics)
        return out


@dataclass(frozen=True)
class ResultSet:
    """Rows plus the metric descriptors that apply to them."""
    metrics: tuple[MetricDescriptor, ...] = ()
    rows: tuple[ResultRow, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def metric_names(self) -> list[str]:
        return [m.name for m in self.metrics]

    def descriptor(self, name: str) -> MetricDescriptor | None:
        for m in self.metrics:
            if m.name == name:
                return m
        return None
