from __future__ import annotations

from expansion_results.models.dto import NpvResult, StudyResult, StudyResultsSummary, UnitResult

from .client import ApiClient, ApiError

"""Results endpoints (/results/...)."""


def get_study_results(
    client: ApiClient, scenario_id: int, year: str | None = None, iteration: int | None = None
) -> list[StudyResult]:
    data = client.get_list(f"/results/study/{scenario_id}", {"year": year, "iteration": iteration})
    return StudyResult.from_json_list(data)


def get_npv_results(
    client: ApiClient, scenario_id: int, year: str | None = None, iteration: int | None = None
) -> list[NpvResult]:
    data = client.get_list(f"/results/npv/{scenario_id}", {"year": year, "iteration": iteration})
    return NpvResult.from_json_list(data)


def get_unit_results(client: ApiClient, scenario_id: int, year: str | None = None) -> list[UnitResult]:
    data = client.get_list(f"/results/units/{scenario_id}", {"year": year})
    return UnitResult.from_json_list(data)


def get_available_years(client: ApiClient, scenario_id: int) -> list[str]:
    path = f"/results/years/{scenario_id}"
    data = client.get(path)
    if data is not None and not isinstance(data, list):
        raise ApiError(200, "invalid response shape: expected a list of years", path, data)
    return [str(y) for y in (data or [])]


def get_study_results_summary(client: ApiClient, scenario_id: int) -> list[StudyResultsSummary]:
    data = client.get_list(f"/results/study/{scenario_id}/summary")
    return StudyResultsSummary.from_json_list(data)
