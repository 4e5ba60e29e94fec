from __future__ import annotations

from ..models.pivot import PivotTable
from ..models.result_row import MetricValue

"""Baseline derivation for pivot tables.

The baseline of build cycle c is the value of the technology the solver selected
in cycle c-1, i.e. what was already committed before c. When several
technologies are marked "Selected" in the prior cycle, the first one in the
pivot's technology order wins.
"""

__all__ = [
    "baseline",
    "baselines",
]


def baseline(table: PivotTable, build_cycle: int) -> MetricValue:
    """Baseline value for one build cycle.

    Args:
        table: Pivot of the selected metric
        build_cycle: Cycle number (not a display position)

    Returns:
        The prior cycle's selected value, or None for cycle 0, for metrics
        without a baseline, or when no technology was selected in cycle-1.
    """
    if build_cycle == 0 or not table.has_baseline:
        return None
    previous = build_cycle - 1
    for tech in table.technologies:
        c = table.cell(previous, tech)
        if c is not None and c.is_selected:
            return c.value
    return None


def baselines(table: PivotTable) -> dict[int, MetricValue]:
    return {bc: baseline(table, bc) for bc in table.build_cycles}
