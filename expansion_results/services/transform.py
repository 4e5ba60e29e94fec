from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Any

from ..models.dto import NpvResult, StudyResult
from ..models.metric import NPV_METRICS, YEARLY_METRICS
from ..models.result_row import MetricBag, ResultRow, ResultSet, is_numeric_value

"""Backend DTO -> ResultSet transformation.

Maps yearly study rows and NPV rows onto the flat ResultRow shape used by the
pivot and table views. Missing numeric values become 0, missing identifiers get
placeholder text, so downstream code never special-cases nulls from the API.
"""

__all__ = [
    "YEARLY_FIELD_MAP",
    "NPV_FIELD_MAP",
    "NPV_TECHNOLOGY",
    "transform_study_results",
    "transform_npv_results",
]

# metric display name -> StudyResult attribute
YEARLY_FIELD_MAP: dict[str, str] = {
    "Added Capacity": "capacity_added",
    "Reliability Metric": "reliability_metric",
    "System Cost": "system_cost",
    "Generation": "generation",
    "Capacity Factor": "capacity_factor",
    "Hours Online": "hours_online",
    "Fixed Cost": "fixed_cost",
    "Fixed Carrying Cost": "fixed_carrying_cost",
    "Fixed OM Cost": "fixed_om_cost",
    "Production Cost": "production_cost",
    "Fuel Cost": "fuel_cost",
    "Startup Cost": "startup_cost",
    "Variable OM Cost": "variable_om_cost",
    "Emission Cost": "emission_cost",
    "Energy Margin": "energy_margin",
    "Market Price": "market_price",
    "System Curtailment": "system_curtailment",
    "Start Attempts": "start_attempts",
}

# metric display name -> NpvResult attribute
NPV_FIELD_MAP: dict[str, str] = {
    "LOLE": "reliability_metric",
    "Energy Margin": "energy_margin",
    "Total Cost": "system_cost",
    "Production Cost": "production_cost",
    "Fuel Cost": "fuel_cost",
    "Startup Cost": "startup_cost",
    "Variable OM Cost": "variable_om_cost",
    "Emission Cost": "emission_cost",
    "EUE Cost": "eue_cost",
    "Net Purchase Cost": "net_purchase_cost",
    "System Fixed Cost": "system_fixed_cost",
    "System Fixed Carrying Cost": "system_fixed_carrying_cost",
    "System Fixed OM Cost": "system_fixed_om_cost",
}

# NPV rows carry no unit combination; the whole scenario is one "technology"
NPV_TECHNOLOGY = "Scenario"


# leading integer of a text value: "2030.0" -> 2030, "12abc" -> 12
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_int(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _metric_values(dto: Any, field_map: dict[str, str]) -> MetricBag:
    values = {}
    for name, attr in field_map.items():
        v = getattr(dto, attr)
        # numbers and text pass through; null and nested JSON become 0
        values[name] = v if is_numeric_value(v) or isinstance(v, str) else 0
    return MetricBag(values)


def transform_study_results(results: Sequence[StudyResult] | None) -> ResultSet:
    if not results:
        return ResultSet()
    rows = tuple(
        ResultRow(
            technology=r.unit_combo or "Unknown",
            build_cycle=max(_parse_int(r.iteration), 0),
            status=r.status or "Unknown",
            year=_parse_int(r.year),
            metrics=_metric_values(r, YEARLY_FIELD_MAP),
        )
        for r in results
    )
    return ResultSet(metrics=YEARLY_METRICS, rows=rows)


def transform_npv_results(results: Sequence[NpvResult] | None) -> ResultSet:
    if not results:
        return ResultSet()
    rows = tuple(
        ResultRow(
            technology=NPV_TECHNOLOGY,
            build_cycle=max(_parse_int(r.iteration), 0),
            status=r.stage or "Unknown",
            year=_parse_int(r.year),
            metrics=_metric_values(r, NPV_FIELD_MAP),
        )
        for r in results
    )
    return ResultSet(metrics=NPV_METRICS, rows=rows)
