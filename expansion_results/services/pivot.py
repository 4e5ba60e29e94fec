from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import Any, NamedTuple

from ..models.metric import MetricDescriptor
from ..models.pivot import PivotCell, PivotTable
from ..models.result_row import MetricValue, ResultRow, is_numeric_value
from ..models.view_state import BUILD_CYCLE_KEY, SortConfig, SortDirection
from .sorting import compare_values

"""Pivot transformer: flat ResultRows -> build cycle x technology table.

One metric is pivoted at a time. Every (build cycle, technology) pair present in
the rows gets exactly one cell (the last row wins on duplicates); pairs absent
from the rows stay absent, they are never zero filled. The technology columns are
the union over all cycles, ordered by their shortened display label.
"""

__all__ = [
    "TECHNOLOGY_LABELS",
    "shorten_technology",
    "pivot",
    "sort_build_cycles",
    "is_numeric_metric",
    "format_value",
    "format_axis_value",
    "ChartSeries",
    "ChartBounds",
    "chart_series",
    "chart_bounds",
]

EMPTY_DISPLAY = "—"

TECHNOLOGY_LABELS: dict[str, str] = {
    "Candidate_Adv CC_RestOfSys": "Adv CC",
    "Candidate_Adv CT_RestOfSys": "Adv CT",
    "Candidate_Battery_4HR_RestOfSys": "Battery 4HR",
    "Candidate_Battery_4HR_RestOfSys;Candidate_Solar_W_RestOfSys": "Battery+Solar",
    "Candidate_Solar_W_RestOfSys": "Solar W",
    "Candidate_Wind_W_RestOfSys": "Wind W",
}

_TRAILING_ZEROS = re.compile(r"\.?0+$")


def shorten_technology(technology: str) -> str:
    label = TECHNOLOGY_LABELS.get(technology)
    if label is not None:
        return label
    return technology.replace("Candidate_", "").replace("_RestOfSys", "").replace("_", " ")


def _cell_value(table_cells: dict[tuple[int, str], PivotCell], bc: int, tech: str) -> MetricValue:
    c = table_cells.get((bc, tech))
    return c.value if c is not None else None


def sort_build_cycles(
    cycles: Iterable[int],
    cells: dict[tuple[int, str], PivotCell],
    sort: SortConfig | None,
) -> tuple[int, ...]:
    """Order build cycles for display.

    `buildCycle` sorts by cycle number; any other key sorts by that technology
    column's cell values. Missing values go last in both directions, and equal
    values keep ascending cycle order.
    """
    ordered = sorted(cycles)
    if sort is None or not sort.is_active:
        return tuple(ordered)
    descending = sort.direction is SortDirection.DESC
    if sort.key == BUILD_CYCLE_KEY:
        return tuple(reversed(ordered)) if descending else tuple(ordered)

    def cmp(a: int, b: int) -> int:
        va = _cell_value(cells, a, sort.key)
        vb = _cell_value(cells, b, sort.key)
        if va is None and vb is None:
            return 0
        if va is None:
            return 1
        if vb is None:
            return -1
        c = compare_values(va, vb)
        return -c if descending else c

    return tuple(sorted(ordered, key=cmp_to_key(cmp)))


def pivot(
    rows: Iterable[ResultRow],
    metric: str,
    sort: SortConfig | None = None,
    descriptor: MetricDescriptor | None = None,
) -> PivotTable:
    """Pivot one metric of the rows.

    Args:
        rows: Flat result rows (any order)
        metric: Metric name to place in the cells
        sort: Optional build-cycle ordering (None or inactive: ascending)
        descriptor: Metric descriptor; enables the baseline column and unit

    Returns:
        PivotTable with cells keyed by (build cycle, technology)
    """
    cells: dict[tuple[int, str], PivotCell] = {}
    cycles: set[int] = set()
    techs: set[str] = set()
    for r in rows:
        cells[(r.build_cycle, r.technology)] = PivotCell(value=r.get(metric), status=r.status)
        cycles.add(r.build_cycle)
        techs.add(r.technology)

    labels = {t: shorten_technology(t) for t in techs}
    technologies = tuple(sorted(techs, key=lambda t: (labels[t].casefold(), t)))
    return PivotTable(
        metric=metric,
        build_cycles=sort_build_cycles(cycles, cells, sort),
        technologies=technologies,
        cells=cells,
        has_baseline=descriptor.has_baseline if descriptor is not None else False,
        unit=descriptor.unit if descriptor is not None else "",
        labels=labels,
    )


def is_numeric_metric(rows: Iterable[ResultRow], metric: str) -> bool:
    """Numeric when the first non-null occurrence of the metric is a number."""
    for r in rows:
        v = r.get(metric)
        if v is None:
            continue
        return is_numeric_value(v)
    return False


def _js_exponential(value: float, digits: int) -> str:
    mantissa, exp = f"{value:.{digits}e}".split("e")
    e = int(exp)
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _format(value: Any, digits: int) -> str:
    if value is None or value == "":
        return EMPTY_DISPLAY
    if isinstance(value, str):
        return value
    if not is_numeric_value(value):
        return str(value)
    if isinstance(value, float) and math.isnan(value):
        return EMPTY_DISPLAY
    magnitude = abs(value)
    if magnitude >= 1e9:
        return f"{value / 1e9:.{digits}f}B"
    if magnitude >= 1e6:
        return f"{value / 1e6:.{digits}f}M"
    if magnitude >= 1e3:
        return f"{value / 1e3:.{digits}f}K"
    if 0 < magnitude < 0.01:
        return _js_exponential(value, digits)
    return _TRAILING_ZEROS.sub("", f"{value:.{digits}f}", count=1)


def format_value(value: Any) -> str:
    """Display text for a cell: K/M/B suffixes, exponent below 0.01, else 2 decimals."""
    return _format(value, 2)


def format_axis_value(value: Any) -> str:
    """One-decimal variant used for chart axis labels."""
    return _format(value, 1)


class ChartSeries(NamedTuple):
    technology: str
    label: str
    points: list[tuple[int, float | None]]


class ChartBounds(NamedTuple):
    min_value: float
    max_value: float
    min_cycle: int
    max_cycle: int


def chart_series(table: PivotTable, rows: Sequence[ResultRow] | None = None) -> list[ChartSeries]:
    """One line series per technology over ascending build cycles.

    Returns an empty list for non-numeric metrics. When `rows` is given the
    numeric check scans them, otherwise the table's cells in cycle order.
    """
    if rows is not None:
        numeric = is_numeric_metric(rows, table.metric)
    else:
        numeric = _first_value_is_numeric(table)
    if not numeric:
        return []
    cycles = sorted(table.build_cycles)
    series: list[ChartSeries] = []
    for t in table.technologies:
        points = []
        for bc in cycles:
            v = _cell_value(table.cells, bc, t)
            points.append((bc, v if is_numeric_value(v) else None))
        series.append(ChartSeries(technology=t, label=table.label(t), points=points))
    return series


def _first_value_is_numeric(table: PivotTable) -> bool:
    for bc in sorted(table.build_cycles):
        for t in table.technologies:
            v = _cell_value(table.cells, bc, t)
            if v is not None:
                return is_numeric_value(v)
    return False


def chart_bounds(series: Sequence[ChartSeries]) -> ChartBounds | None:
    """Axis bounds: value axis from 0 to 10% above the maximum."""
    values = [v for s in series for _, v in s.points if v is not None]
    cycles = [bc for s in series for bc, _ in s.points]
    if not values or not cycles:
        return None
    return ChartBounds(
        min_value=0,
        max_value=max(values) * 1.1,
        min_cycle=min(cycles),
        max_cycle=max(cycles),
    )
