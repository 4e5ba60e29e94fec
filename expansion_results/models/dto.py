from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, TypeVar

"""Backend DTOs for the Expansion Plan REST API.

The backend serializes camelCase JSON with every column nullable. Each DTO is a
frozen dataclass with snake_case fields; `from_json` maps camelCase keys onto the
fields, ignores unknown keys and leaves missing keys as None.
"""

__all__ = [
    "ScenarioMaster",
    "StudyMaster",
    "UnitMaster",
    "StudyResult",
    "NpvResult",
    "UnitResult",
    "MetricMaster",
    "EscalatingRate",
    "SolverSetting",
    "ScenarioDetails",
    "StudyResultsSummary",
    "HealthCheck",
    "DatabaseConnectionRequest",
    "DatabaseConnectionResponse",
    "ConnectionTestResult",
    "ConnectionStatus",
    "camel_case",
]

T = TypeVar("T", bound="_Dto")


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class _Dto:
    """Mixin providing camelCase JSON (de)serialization for flat dataclasses."""

    @classmethod
    def from_json(cls: type[T], data: dict[str, Any] | None) -> T:
        data = data or {}
        kwargs = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = camel_case(f.name)
            if key in data:
                kwargs[f.name] = data[key]
        return cls(**kwargs)

    @classmethod
    def from_json_list(cls: type[T], items: list[dict[str, Any]] | None) -> list[T]:
        return [cls.from_json(item) for item in (items or [])]

    def to_json(self) -> dict[str, Any]:
        return {camel_case(k): v for k, v in asdict(self).items()}  # type: ignore[call-overload]


@dataclass(frozen=True)
class ScenarioMaster(_Dto):
    ep_scenario_id: int | None = None
    ep_scenario_description: str | None = None


@dataclass(frozen=True)
class StudyMaster(_Dto):
    study_id: int | None = None
    status: str | None = None
    year: str | None = None
    marginal_unit: str | None = None
    ep_scenario_id: int | None = None
    unit_type: str | None = None
    unit_category_description: str | None = None
    end_year: str | None = None


@dataclass(frozen=True)
class UnitMaster(_Dto):
    ep_unit_id: int | None = None
    year: str | None = None
    max_number_of_build: int | None = None
    current_number_of_build: int | None = None
    ep_unit_description: str | None = None
    lifetime: int | None = None
    ep_scenario_id: int | None = None
    exclusive_of_units: str | None = None
    exclude_build: bool | None = None
    max_number_of_build_per_year: int | None = None
    current_number_of_build_per_year: int | None = None
    temporary_elimination: bool | None = None
    total_rank: int | None = None
    end_year: str | None = None
    is_retirement_candidate: bool | None = None
    permanent_elimination: bool | None = None
    start_month: int | None = None
    capacity: float | None = None
    total_fixed_costs: float | None = None


@dataclass(frozen=True)
class StudyResult(_Dto):
    """One yearly study result row (GET /results/study/{scenarioId})."""
    study_id: int | None = None
    iteration: int | None = None
    year: str | None = None
    reliability_metric: float | None = None
    unit_combo: str | None = None
    system_cost: float | None = None
    status: str | None = None
    stage: str | None = None
    capacity_added: float | None = None
    generation: float | None = None
    start_attempts: float | None = None
    capacity_factor: float | None = None
    hours_online: float | None = None
    fixed_cost: float | None = None
    incremental_capital_cost: float | None = None
    selection_criteria: str | None = None
    production_cost: float | None = None
    system_curtailment: float | None = None
    curtailment: float | None = None
    emission_cost: float | None = None
    npv_system_cost: float | None = None
    npv_reliability_metric: float | None = None
    fixed_carrying_cost: float | None = None
    fixed_om_cost: float | None = None
    ep_scenario_id: int | None = None
    fuel_cost: float | None = None
    startup_cost: float | None = None
    variable_om_cost: float | None = None
    delta_reliability_metric: float | None = None
    cost_by_reliability_metric: float | None = None
    rps_generation: float | None = None
    eue_benefit: float | None = None
    max_eue_duration: float | None = None
    lolh_cap: float | None = None
    lolev: float | None = None
    eue_depth: float | None = None
    energy_margin: float | None = None
    npv_energy_margin: float | None = None
    npv_available_mw_in_eue_hours: float | None = None
    available_mw_in_eue_hours: float | None = None
    npv_fixed_cost: float | None = None
    net_cost: float | None = None
    prompt_cost_by_reliability_metric: float | None = None
    eue_cap: float | None = None
    eue_cost: float | None = None
    net_purchase_cost: float | None = None
    system_fixed_cost: float | None = None
    system_fixed_carrying_cost: float | None = None
    system_fixed_om_cost: float | None = None
    delta_annual_cost: float | None = None
    market_price: float | None = None


@dataclass(frozen=True)
class NpvResult(_Dto):
    """One NPV result row (GET /results/npv/{scenarioId}); npv_* fields are discounted."""
    study_id: int | None = None
    iteration: int | None = None
    year: str | None = None
    reliability_metric: float | None = None
    system_cost: float | None = None
    stage: str | None = None
    npv_system_cost: float | None = None
    simulating_year: int | None = None
    npv_reliability_metric: float | None = None
    ep_scenario_id: int | None = None
    production_cost: float | None = None
    fuel_cost: float | None = None
    startup_cost: float | None = None
    variable_om_cost: float | None = None
    emission_cost: float | None = None
    npv_production_cost: float | None = None
    npv_fuel_cost: float | None = None
    npv_startup_cost: float | None = None
    npv_variable_om_cost: float | None = None
    npv_emission_cost: float | None = None
    energy_margin: float | None = None
    npv_energy_margin: float | None = None
    npv_eue_cost: float | None = None
    eue_cost: float | None = None
    npv_net_purchase_cost: float | None = None
    npv_system_fixed_om_cost: float | None = None
    npv_system_fixed_cost: float | None = None
    npv_system_fixed_carrying_cost: float | None = None
    net_purchase_cost: float | None = None
    system_fixed_cost: float | None = None
    system_fixed_carrying_cost: float | None = None
    system_fixed_om_cost: float | None = None


@dataclass(frozen=True)
class UnitResult(_Dto):
    ep_unit_id: int | None = None
    year: str | None = None
    capacity_added: float | None = None
    stage: str | None = None
    iteration: int | None = None
    ep_scenario_id: int | None = None
    capacity_removed: float | None = None


@dataclass(frozen=True)
class MetricMaster(_Dto):
    constraint_id: int | None = None
    constraint_variable: str | None = None
    exceedance_value: float | None = None
    stage1_value: float | None = None
    priority: int | None = None
    ep_scenario_id: int | None = None
    stage2_value: float | None = None
    stage3_value: float | None = None
    year: str | None = None


@dataclass(frozen=True)
class EscalatingRate(_Dto):
    ep_scenario_id: int | None = None
    escalating_variable: str | None = None
    unit_var_id: int | None = None
    display_name: str | None = None
    start_year: str | None = None
    end_year: str | None = None
    rate: float | None = None


@dataclass(frozen=True)
class SolverSetting(_Dto):
    solver_var_id: int | None = None
    solver_var_name: str | None = None
    solver_var_description: str | None = None
    solver_value: str | None = None


@dataclass(frozen=True)
class ScenarioDetails:
    """GET /scenarios/{id}/details: a scenario with its related collections."""
    scenario: ScenarioMaster
    units: list[UnitMaster] = field(default_factory=list)
    metrics: list[MetricMaster] = field(default_factory=list)
    escalating_rates: list[EscalatingRate] = field(default_factory=list)
    solver_definitions: list[SolverSetting] = field(default_factory=list)
    studies: list[StudyMaster] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> ScenarioDetails:
        data = data or {}
        return cls(
            scenario=ScenarioMaster.from_json(data.get("scenario")),
            units=UnitMaster.from_json_list(data.get("units")),
            metrics=MetricMaster.from_json_list(data.get("metrics")),
            escalating_rates=EscalatingRate.from_json_list(data.get("escalatingRates")),
            solver_definitions=SolverSetting.from_json_list(data.get("solverDefinitions")),
            studies=StudyMaster.from_json_list(data.get("studies")),
        )


@dataclass(frozen=True)
class StudyResultsSummary(_Dto):
    year: str | None = None
    total_capacity_added: float | None = None
    avg_reliability_metric: float | None = None
    total_system_cost: float | None = None
    iteration_count: int | None = None


@dataclass(frozen=True)
class HealthCheck(_Dto):
    status: str | None = None
    timestamp: str | None = None


AUTH_WINDOWS = "Windows"
AUTH_SQL_SERVER = "SqlServer"


@dataclass(frozen=True)
class DatabaseConnectionRequest(_Dto):
    server_name: str
    database_name: str
    authentication_type: str = AUTH_WINDOWS  # Windows | SqlServer
    username: str | None = None
    password: str | None = None
    trust_server_certificate: bool = True
    connection_timeout: int = 30

    def to_json(self) -> dict[str, Any]:
        body = super().to_json()
        # credentials are only sent for SQL Server authentication
        if self.authentication_type != AUTH_SQL_SERVER:
            body.pop("username", None)
            body.pop("password", None)
        return body


@dataclass(frozen=True)
class DatabaseConnectionResponse(_Dto):
    success: bool = False
    message: str | None = None
    server_name: str | None = None
    database_name: str | None = None
    authentication_type: str | None = None
    username: str | None = None
    is_connected: bool = False


@dataclass(frozen=True)
class ConnectionTestResult(_Dto):
    success: bool = False
    message: str | None = None
    sql_server_version: str | None = None
    response_time_ms: float = 0


@dataclass(frozen=True)
class ConnectionStatus(_Dto):
    is_connected: bool = False
    server_name: str | None = None
    database_name: str | None = None
    authentication_type: str | None = None
