from __future__ import annotations

from expansion_results.models.dto import HealthCheck, ScenarioDetails, ScenarioMaster, SolverSetting

from .client import ApiClient

"""Scenario endpoints (/scenarios/...) and the health check."""


def get_all(client: ApiClient) -> list[ScenarioMaster]:
    return ScenarioMaster.from_json_list(client.get_list("/scenarios"))


def get_by_id(client: ApiClient, scenario_id: int) -> ScenarioMaster:
    return ScenarioMaster.from_json(client.get(f"/scenarios/{scenario_id}"))


def get_details(client: ApiClient, scenario_id: int) -> ScenarioDetails:
    return ScenarioDetails.from_json(client.get(f"/scenarios/{scenario_id}/details"))


def get_solver_settings(client: ApiClient, scenario_id: int) -> list[SolverSetting]:
    return SolverSetting.from_json_list(client.get_list(f"/scenarios/{scenario_id}/solver-settings"))


def create(client: ApiClient, name: str) -> ScenarioMaster:
    return ScenarioMaster.from_json(client.post("/scenarios", {"name": name}))


def update(client: ApiClient, scenario_id: int, name: str) -> ScenarioMaster:
    return ScenarioMaster.from_json(client.put(f"/scenarios/{scenario_id}", {"name": name}))


def delete(client: ApiClient, scenario_id: int) -> None:
    client.delete(f"/scenarios/{scenario_id}")


def health_check(client: ApiClient) -> HealthCheck:
    return HealthCheck.from_json(client.get("/health"))
