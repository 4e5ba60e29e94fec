from __future__ import annotations

import math
from pathlib import Path

import pytest

from expansion_results.models.metric import NPV_METRICS, CalculationBasis
from expansion_results.services.fallback import (
    FallbackError,
    clear_cache,
    fallback_results,
    fallback_scenarios,
    load_fallback_definition,
)

ADV_CC = "Candidate_Adv CC_RestOfSys"
BATTERY = "Candidate_Battery_4HR_RestOfSys"


def _find(rs, tech, bc, year):
    return next(r for r in rs.rows if r.technology == tech and r.build_cycle == bc and r.year == year)


def test_yearly_fallback_shape():
    rs = fallback_results(CalculationBasis.YEARLY)
    # 6 technologies x 11 years x 24 build cycles
    assert len(rs) == 6 * 11 * 24
    assert {r.year for r in rs.rows} == set(range(2030, 2041))
    assert {r.build_cycle for r in rs.rows} == set(range(24))
    assert len({r.technology for r in rs.rows}) == 6
    assert "Added Capacity" in rs.metric_names
    assert rs.descriptor("LOLE").has_baseline


def test_fallback_is_cached_and_deterministic():
    first = fallback_results(CalculationBasis.YEARLY)
    assert fallback_results(CalculationBasis.YEARLY) is first
    clear_cache()
    assert fallback_results(CalculationBasis.YEARLY) == first


def test_selected_status_rotates_per_cycle():
    rs = fallback_results(CalculationBasis.YEARLY)
    assert _find(rs, ADV_CC, 0, 2030).status == "Selected 1 Units"
    assert _find(rs, ADV_CC, 1, 2030).status == "Rejected"
    assert _find(rs, ADV_CC, 4, 2030).status == "Selected 1 Units"
    assert _find(rs, BATTERY, 2, 2030).status == "Selected 1 Units"
    # exactly one selected technology per cycle and year
    for bc in range(24):
        selected = [r for r in rs.rows if r.year == 2030 and r.build_cycle == bc and r.is_selected]
        assert len(selected) == 1


def test_only_the_first_four_technologies_are_selected():
    rs = fallback_results(CalculationBasis.YEARLY)
    selected = {r.technology for r in rs.rows if r.is_selected}
    assert selected == {
        ADV_CC,
        "Candidate_Adv CT_RestOfSys",
        BATTERY,
        "Candidate_Battery_4HR_RestOfSys;Candidate_Solar_W_RestOfSys",
    }
    dataset = load_fallback_definition()
    assert dataset.status_for(7, 3) == dataset.selected_status
    assert dataset.status_for(4, 4) == dataset.rejected_status
    assert dataset.status_for(5, 5) == dataset.rejected_status


def test_yearly_value_formula():
    rs = fallback_results(CalculationBasis.YEARLY)
    # year index 0, cycle 0, technology 0: variance = 0.95 + sin(0) * 0.05
    assert _find(rs, ADV_CC, 0, 2030).get("Added Capacity") == pytest.approx(1028.85)
    r = _find(rs, ADV_CC, 2, 2031)
    expected = 1083 * 1.03 * 1.03 * (0.95 + math.sin(2) * 0.05)
    assert r.get("Added Capacity") == pytest.approx(expected, abs=0.01)


def test_npv_fallback_uses_npv_descriptors_and_keeps_zero():
    rs = fallback_results(CalculationBasis.NPV)
    assert rs.metrics == NPV_METRICS
    r = _find(rs, BATTERY, 5, 2033)
    assert r.get("Fuel Cost") == 0
    assert r.get("Total Cost") > 0


def test_fallback_scenarios():
    scenarios = fallback_scenarios()
    assert len(scenarios) == 4
    assert scenarios[0].ep_scenario_id == 1
    assert scenarios[0].ep_scenario_description


def test_load_definition_errors(tmp_path: Path):
    with pytest.raises(FallbackError):
        load_fallback_definition(tmp_path / "missing.yml")
    bad = tmp_path / "bad.yml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(FallbackError):
        load_fallback_definition(bad)
    incomplete = tmp_path / "incomplete.yml"
    incomplete.write_text("technologies: [A]\n", encoding="utf-8")
    with pytest.raises(FallbackError):
        load_fallback_definition(incomplete)
