from __future__ import annotations

from expansion_results.models.dto import NpvResult, StudyResult
from expansion_results.models.metric import NPV_METRICS, YEARLY_METRICS
from expansion_results.services.transform import (
    NPV_TECHNOLOGY,
    transform_npv_results,
    transform_study_results,
)


def test_empty_input_gives_empty_result_set():
    assert transform_study_results([]).is_empty
    assert transform_study_results(None).is_empty
    assert transform_npv_results([]).is_empty


def test_study_results_mapping_and_defaults():
    dto = StudyResult.from_json({
        "unitCombo": "Candidate_Adv CC_RestOfSys",
        "iteration": 2,
        "status": "Selected 1 Units",
        "year": "2031",
        "capacityAdded": 1083,
        "systemCost": None,
        "marketPrice": 686.24,
        "unknownField": "ignored",
    })
    rs = transform_study_results([dto])
    assert rs.metrics == YEARLY_METRICS
    r = rs.rows[0]
    assert r.technology == "Candidate_Adv CC_RestOfSys"
    assert r.build_cycle == 2
    assert r.year == 2031
    assert r.is_selected
    assert r.get("Added Capacity") == 1083
    assert r.get("Market Price") == 686.24
    # missing numeric values become 0
    assert r.get("System Cost") == 0
    assert r.get("Start Attempts") == 0


def test_study_results_placeholders_for_missing_identifiers():
    rs = transform_study_results([StudyResult()])
    r = rs.rows[0]
    assert r.technology == "Unknown"
    assert r.status == "Unknown"
    assert r.build_cycle == 0
    assert r.year == 0


def test_unparseable_year_becomes_zero():
    rs = transform_study_results([StudyResult(year="FY30", iteration=1)])
    assert rs.rows[0].year == 0


def test_npv_results_mapping():
    dto = NpvResult.from_json({"iteration": 4, "stage": "Final", "year": "2035",
                               "reliabilityMetric": 2.5, "systemCost": 1250.5, "eueCost": 125.3})
    rs = transform_npv_results([dto])
    assert rs.metrics == NPV_METRICS
    r = rs.rows[0]
    assert r.technology == NPV_TECHNOLOGY
    assert r.status == "Final"
    assert r.build_cycle == 4
    assert r.get("LOLE") == 2.5
    assert r.get("Total Cost") == 1250.5
    assert r.get("EUE Cost") == 125.3
    assert r.get("Fuel Cost") == 0


def test_year_and_iteration_use_the_leading_integer():
    rows = transform_study_results([
        StudyResult(year="2030.0", iteration="2"),
        StudyResult(year=" 2031 ", iteration="3rd"),
        StudyResult(year=2032, iteration=4.0),
        StudyResult(year="n/a", iteration="-1"),
    ]).rows
    assert [(r.year, r.build_cycle) for r in rows] == [(2030, 2), (2031, 3), (2032, 4), (0, 0)]


def test_nested_metric_values_become_zero():
    dto = StudyResult.from_json({"unitCombo": "A", "capacityAdded": {"value": 5}, "generation": "n/a"})
    r = transform_study_results([dto]).rows[0]
    assert r.get("Added Capacity") == 0
    assert r.get("Generation") == "n/a"
