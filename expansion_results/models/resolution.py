from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .dto import ScenarioMaster
from .metric import CalculationBasis
from .result_row import ResultSet

"""Data source resolution models.

`ResolvedResults` is the uniform shape handed to views regardless of whether the
rows came from the backend or from the synthetic fallback dataset.
"""

__all__ = [
    "DataSourceState",
    "ResultsQuery",
    "ResolvedResults",
    "ResolvedScenarios",
]


class DataSourceState(Enum):
    """Where the rows of a resolution came from.

    NO_DATA and UNAVAILABLE both render the fallback dataset, but are kept
    distinct so callers can tell "scenario has no results" from "backend down".
    """
    LIVE = "live"
    NO_DATA = "no_data"  # backend answered 200 with zero rows
    UNAVAILABLE = "unavailable"  # transport/server failure, or no scenario selected
    LOADING = "loading"
    LOCAL = "local"  # plan-specific data supplied by the caller


@dataclass(frozen=True)
class ResultsQuery:
    scenario_id: int | None
    basis: CalculationBasis = CalculationBasis.YEARLY
    year: str | None = None
    iteration: int | None = None

    @property
    def key(self) -> tuple[int | None, CalculationBasis]:
        """Identity used to discard stale responses (filters do not start a new key)."""
        return (self.scenario_id, self.basis)

    def params(self) -> dict[str, str | int]:
        params: dict[str, str | int] = {}
        if self.year:
            params["year"] = self.year
        if self.iteration is not None:
            params["iteration"] = self.iteration
        return params


@dataclass(frozen=True)
class ResolvedResults:
    query: ResultsQuery
    data: ResultSet
    is_live: bool  # rows came from the backend; False for fallback, loading and local data
    is_loading: bool
    error: Exception | None
    state: DataSourceState

    @property
    def is_using_mock_data(self) -> bool:
        return not self.is_live

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def source_label(self) -> str:
        if self.state is DataSourceState.LIVE:
            return "live"
        if self.state is DataSourceState.LOCAL:
            return "local"
        return "fallback"


@dataclass(frozen=True)
class ResolvedScenarios:
    """Scenario list with the same live/fallback reporting as results."""
    scenarios: list[ScenarioMaster]
    is_live: bool
    error: Exception | None
    state: DataSourceState

    @property
    def is_using_mock_data(self) -> bool:
        return not self.is_live
