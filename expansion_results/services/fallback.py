from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..models.dto import ScenarioMaster
from ..models.metric import NPV_METRICS, CalculationBasis, MetricDescriptor
from ..models.result_row import ResultRow, ResultSet, is_numeric_value

"""Deterministic fallback datasets.

When the backend is unreachable, or answers with zero rows, views still render a
plausible dataset. The base values per technology live in
`expansion_results/data/fallback.yml`; this module expands them over years and
build cycles with fixed growth factors and a per-technology sine variance, so
the same dataset is produced on every run.
"""

__all__ = [
    "FALLBACK_DATA_PATH",
    "FallbackError",
    "FallbackDataset",
    "load_fallback_definition",
    "fallback_results",
    "fallback_scenarios",
    "clear_cache",
]

FALLBACK_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "fallback.yml"


class FallbackError(Exception):
    """Raised when the bundled fallback definition is missing or malformed."""


@dataclass(frozen=True)
class _Factors:
    per_year: float
    per_cycle: float
    variance_base: float
    variance_amplitude: float


class FallbackDataset:
    """Parsed fallback definition with per-basis generation."""

    def __init__(self, definition: dict[str, Any]) -> None:
        try:
            self.technologies: list[str] = list(definition["technologies"])
            years = definition["years"]
            self.years: list[int] = list(range(int(years["first"]), int(years["last"]) + 1))
            self.build_cycles: int = int(definition["build_cycles"])
            self.selected_status: str = definition["selected_status"]
            self.rejected_status: str = definition["rejected_status"]
            self.scenarios: list[dict[str, Any]] = list(definition.get("scenarios", []))
            self._yearly = definition["yearly"]
            self._npv = definition["npv"]
        except (KeyError, TypeError, ValueError) as e:
            raise FallbackError(f"invalid fallback definition: {e}") from e

    def status_for(self, build_cycle: int, tech_index: int) -> str:
        # one of the first four technologies is selected per cycle, in rotation
        if build_cycle % 4 == tech_index:
            return self.selected_status
        return self.rejected_status

    def yearly_metrics(self) -> tuple[MetricDescriptor, ...]:
        return tuple(
            MetricDescriptor(str(name), str(unit), bool(has_baseline))
            for name, unit, has_baseline in self._yearly["metrics"]
        )

    def generate(self, basis: CalculationBasis) -> ResultSet:
        if basis is CalculationBasis.NPV:
            section, metrics = self._npv, NPV_METRICS
        else:
            section, metrics = self._yearly, self.yearly_metrics()
        factors = _Factors(**section["factors"])
        base_values: dict[str, dict[str, Any]] = section["base_values"]

        rows: list[ResultRow] = []
        for year_idx, year in enumerate(self.years):
            year_factor = 1 + year_idx * factors.per_year
            for bc in range(self.build_cycles):
                cycle_factor = 1 + bc * factors.per_cycle
                for tech_idx, tech in enumerate(self.technologies):
                    variance = factors.variance_base + math.sin(bc + tech_idx) * factors.variance_amplitude
                    scale = year_factor * cycle_factor * variance
                    values: dict[str, Any] = {}
                    for m in metrics:
                        base = base_values.get(tech, {}).get(m.name)
                        if not is_numeric_value(base):
                            continue
                        values[m.name] = 0 if base == 0 else _round2(base * scale)
                    rows.append(
                        ResultRow(
                            technology=tech,
                            build_cycle=bc,
                            status=self.status_for(bc, tech_idx),
                            year=year,
                            metrics=values,
                        )
                    )
        return ResultSet(metrics=metrics, rows=tuple(rows))


def _round2(value: float) -> float:
    # half-up rounding to cents, independent of banker's rounding
    return math.floor(value * 100 + 0.5) / 100


_cache: dict[CalculationBasis, ResultSet] = {}
_definition: FallbackDataset | None = None
_lock = threading.Lock()


def load_fallback_definition(path: Path | None = None) -> FallbackDataset:
    path = path or FALLBACK_DATA_PATH
    if not path.exists():
        raise FallbackError(f"fallback data not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise FallbackError(f"invalid yaml in {path}: {e}") from e
    if not isinstance(data, dict):
        raise FallbackError(f"fallback root must be a mapping: {path}")
    return FallbackDataset(data)


def _dataset() -> FallbackDataset:
    global _definition
    if _definition is None:
        _definition = load_fallback_definition()
    return _definition


def fallback_results(basis: CalculationBasis) -> ResultSet:
    """Fallback ResultSet for a basis, generated once and cached."""
    with _lock:
        cached = _cache.get(basis)
        if cached is None:
            cached = _dataset().generate(basis)
            _cache[basis] = cached
        return cached


def fallback_scenarios() -> list[ScenarioMaster]:
    with _lock:
        return ScenarioMaster.from_json_list(_dataset().scenarios)


def clear_cache() -> None:
    """Drop cached datasets (tests swap the definition file)."""
    global _definition
    with _lock:
        _cache.clear()
        _definition = None
