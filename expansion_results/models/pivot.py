from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .result_row import MetricValue

"""PivotTable model (build cycle x technology view of one metric).

Derived, never persisted: rebuilt whenever the selected metric or the sort
configuration changes.
"""

__all__ = [
    "PivotCell",
    "PivotTable",
]


@dataclass(frozen=True)
class PivotCell:
    value: MetricValue
    status: str

    @property
    def is_selected(self) -> bool:
        return "Selected" in (self.status or "")


@dataclass(frozen=True)
class PivotTable:
    metric: str
    build_cycles: tuple[int, ...]  # display order (ascending unless sorted)
    technologies: tuple[str, ...]  # sorted by shortened display label
    cells: dict[tuple[int, str], PivotCell] = field(default_factory=dict)
    has_baseline: bool = False
    unit: str = ""
    labels: dict[str, str] = field(default_factory=dict)  # technology -> display label

    def cell(self, build_cycle: int, technology: str) -> PivotCell | None:
        return self.cells.get((build_cycle, technology))

    def row(self, build_cycle: int) -> dict[str, PivotCell]:
        return {
            t: self.cells[(build_cycle, t)]
            for t in self.technologies
            if (build_cycle, t) in self.cells
        }

    def has_cycle(self, build_cycle: int) -> bool:
        return any((build_cycle, t) in self.cells for t in self.technologies)

    def label(self, technology: str) -> str:
        return self.labels.get(technology, technology)

    def to_frame(self, baseline: bool = True) -> pd.DataFrame:
        """Render as a DataFrame indexed by build cycle.

        Missing (cycle, technology) pairs stay empty (None), they are not zero filled.
        """
        # local import: baseline service depends on this model
        from ..services.baseline import baseline as derive_baseline

        records: list[dict[str, Any]] = []
        for bc in self.build_cycles:
            rec: dict[str, Any] = {}
            if baseline and self.has_baseline:
                rec["Baseline"] = derive_baseline(self, bc)
            for t in self.technologies:
                c = self.cells.get((bc, t))
                rec[self.label(t)] = c.value if c is not None else None
            records.append(rec)
        columns = (["Baseline"] if baseline and self.has_baseline else []) + [
            self.label(t) for t in self.technologies
        ]
        df = pd.DataFrame.from_records(records, columns=columns)
        df.index = pd.Index(list(self.build_cycles), name="Build Cycle")
        return df
