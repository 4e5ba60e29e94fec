from __future__ import annotations

import json
import re
from pathlib import Path
from unittest.mock import patch

import pytest
import requests

from expansion_results.cli import main as cli_main

"""End-to-end CLI runs against a mocked HTTP session.

Covers the results commands on live data, on fallback data (no scenario,
empty scenario, unreachable backend) and the fetch error log written on exit.
"""

pytestmark = pytest.mark.integration

ADV_CC = "Candidate_Adv CC_RestOfSys"
WIND = "Candidate_Wind_W_RestOfSys"


def _run(argv, mock_session):
    with patch("expansion_results.api.client.requests.Session", return_value=mock_session):
        return cli_main(argv)


@pytest.fixture()
def live_rows(study_json):
    return [
        study_json(ADV_CC, 0, "Selected 1 Units", capacityAdded=1083, systemCost=2.5e9),
        study_json(WIND, 0, "Rejected", capacityAdded=0, systemCost=2.6e9),
        study_json(ADV_CC, 1, "Rejected", capacityAdded=950.5, systemCost=2.4e9),
        study_json(WIND, 1, "Selected 1 Units", capacityAdded=200, systemCost=2.45e9),
    ]


def test_pivot_without_scenario_uses_fallback(write_config: Path, mock_session, capsys):
    code = _run(["pivot"], mock_session)
    out = capsys.readouterr().out
    assert code == 2
    assert "Added Capacity (MW)" in out.splitlines()
    assert "Adv CC" in out and "Wind W" in out
    assert "INFO no scenario selected, showing fallback data" in out
    assert "SUMMARY source=fallback state=unavailable rows=1584 cycles=24 technologies=6" in out
    mock_session.request.assert_not_called()


def test_live_pivot_with_baseline(write_config: Path, mock_session, router, response_factory, live_rows, capsys):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, live_rows)})
    code = _run(["pivot", "--scenario", "5", "--metric", "System Cost", "--format", "tsv"], mock_session)
    out = capsys.readouterr().out
    assert code == 0
    lines = out.splitlines()
    start = lines.index("Build Cycle\tBaseline\tAdv CC\tWind W")
    assert lines[start + 1] == "0\t\t2500000000\t2600000000"
    # cycle 1 baseline = value of the technology selected in cycle 0
    assert lines[start + 2] == "1\t2500000000\t2400000000\t2450000000"
    assert "SUMMARY source=live state=live rows=4 cycles=2 technologies=2" in out


def test_pivot_sort_by_display_label(write_config: Path, mock_session, router, response_factory, live_rows, capsys):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, live_rows)})
    code = _run(
        ["pivot", "--scenario", "5", "--format", "tsv", "--sort", "Adv CC"], mock_session
    )
    lines = capsys.readouterr().out.splitlines()
    start = lines.index("Build Cycle\tAdv CC\tWind W")
    assert code == 0
    # ascending Adv CC values: 950.5 (cycle 1) before 1083 (cycle 0)
    assert [line.split("\t")[0] for line in lines[start + 1:start + 3]] == ["1", "0"]


def test_empty_scenario_shows_fallback_without_error_log(
    write_config: Path, temp_workdir: Path, mock_session, router, response_factory, capsys
):
    mock_session.request.side_effect = router({"/results/npv/3": response_factory(200, [])})
    code = _run(["table", "--scenario", "3", "--basis", "NPV"], mock_session)
    out = capsys.readouterr().out
    assert code == 2
    assert "INFO scenario=3 has no NPV results, showing fallback data" in out
    assert "state=no_data" in out
    assert list((temp_workdir / "logs").iterdir()) == []


def test_backend_down_writes_error_log(write_config: Path, temp_workdir: Path, mock_session, capsys):
    mock_session.request.side_effect = requests.ConnectionError("refused")
    code = _run(["table", "--scenario", "5"], mock_session)
    out = capsys.readouterr().out
    assert code == 2
    # initial attempt + one retry
    assert mock_session.request.call_count == 2
    assert "WARN results unavailable for scenario=5" in out
    assert "SUMMARY source=fallback state=unavailable" in out

    [log_file] = list((temp_workdir / "logs").iterdir())
    assert re.fullmatch(r"fetch-errors-\d{8}-\d{6}\.log", log_file.name)
    record = json.loads(log_file.read_text(encoding="utf-8"))
    assert record["endpoint"] == "/results/study/5"
    assert record["status"] == -1
    assert record["error_type"] == "TRANSPORT_ERROR"
    assert f"fetch errors written to {Path('logs') / log_file.name}" in out


def test_malformed_results_body_exits_with_fallback(
    write_config: Path, mock_session, router, response_factory, capsys
):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, {"results": []})})
    code = _run(["table", "--scenario", "5"], mock_session)
    out = capsys.readouterr().out
    assert code == 2
    assert "invalid response shape" in out
    assert "SUMMARY source=fallback state=unavailable" in out


def test_table_pagination(write_config: Path, mock_session, capsys):
    code = _run(
        ["table", "--page", "2", "--page-size", "25", "--columns", "Added Capacity,LOLE"], mock_session
    )
    out = capsys.readouterr().out
    assert code == 2
    assert "Showing 26-50 of 1584 results (page 2/64)" in out
    header = next(line for line in out.splitlines() if "Technology" in line)
    assert header.split() == ["Technology", "Build", "Cycle", "Status", "Year", "Added", "Capacity", "LOLE"]


def test_table_page_clamped_to_last(write_config: Path, mock_session, capsys):
    _run(["table", "--page", "999", "--year", "2030"], mock_session)
    out = capsys.readouterr().out
    # 6 technologies x 24 cycles in one year, 10 per page
    assert "Showing 141-144 of 144 results (page 15/15)" in out


def test_export_json_to_file(write_config: Path, temp_workdir: Path, mock_session, router, response_factory, live_rows):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, live_rows)})
    out = temp_workdir / "exports" / "rows.json"
    code = _run(
        ["export", "--scenario", "5", "--format", "json", "--sort", "Added Capacity", "--desc",
         "--output", str(out)],
        mock_session,
    )
    assert code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [d["Added Capacity"] for d in data] == [1083, 950.5, 200, 0]
    assert data[0]["technology"] == ADV_CC
    assert data[0]["buildCycle"] == 0


def test_export_tsv_to_stdout(write_config: Path, mock_session, router, response_factory, live_rows, capsys):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, live_rows)})
    _run(["export", "--scenario", "5", "--columns", "Added Capacity", "--sort", "buildCycle"], mock_session)
    lines = capsys.readouterr().out.splitlines()
    start = lines.index("Technology\tBuild Cycle\tStatus\tYear\tAdded Capacity")
    assert lines[start + 1] == f"{ADV_CC}\t0\tSelected 1 Units\t2030\t1083"
    assert lines[start + 4] == f"{WIND}\t1\tSelected 1 Units\t2030\t200"


def test_export_pivot_json(write_config: Path, temp_workdir: Path, mock_session, router, response_factory, live_rows):
    mock_session.request.side_effect = router({"/results/study/5": response_factory(200, live_rows)})
    out = temp_workdir / "pivot.json"
    _run(["export", "--scenario", "5", "--view", "pivot", "--format", "json", "--output", str(out)], mock_session)
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0] == {"Build Cycle": 0, "Adv CC": 1083, "Wind W": 0}


def test_scenarios_live_and_fallback(write_config: Path, mock_session, router, response_factory, capsys):
    mock_session.request.side_effect = router({
        "/scenarios": response_factory(200, [{"epScenarioId": 11, "epScenarioDescription": "Base"}]),
    })
    assert _run(["scenarios"], mock_session) == 0
    out = capsys.readouterr().out
    assert "11\tBase" in out
    assert "SUMMARY source=live state=live scenarios=1" in out

    mock_session.request.side_effect = router({"/scenarios": response_factory(200, [])})
    assert _run(["scenarios"], mock_session) == 2
    out = capsys.readouterr().out
    assert "1\tBase Case 2030-2040" in out
    assert "SUMMARY source=fallback state=no_data scenarios=4" in out


def test_base_url_override(write_config: Path, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, [])
    _run(["--base-url", "http://other:9000/api", "pivot", "--scenario", "1"], mock_session)
    assert mock_session.request.call_args.args[1] == "http://other:9000/api/results/study/1"


def test_debug_flag_logs_requests(write_config: Path, mock_session, response_factory, capsys):
    mock_session.request.return_value = response_factory(200, [])
    _run(["--debug", "table", "--scenario", "1"], mock_session)
    assert "DEBUG [API] GET /results/study/1" in capsys.readouterr().out


def test_db_status(write_config: Path, temp_workdir: Path, mock_session, router, response_factory, capsys):
    mock_session.request.side_effect = router({
        "/databaseconfig/current": response_factory(
            200, {"isConnected": True, "serverName": "prod", "databaseName": "ep", "authenticationType": "Windows"}
        ),
    })
    assert _run(["db-status"], mock_session) == 0
    assert "SUMMARY connected=true server=prod database=ep auth=Windows" in capsys.readouterr().out


def test_db_status_validation_error(write_config: Path, mock_session, capsys):
    code = _run(["db-status", "--test", "--database", "ep"], mock_session)
    assert code == 1
    assert "ERROR validation: server name is required" in capsys.readouterr().out
    mock_session.request.assert_not_called()


def test_db_configure_saves_form(
    write_config: Path, temp_workdir: Path, mock_session, router, response_factory, monkeypatch
):
    monkeypatch.setenv("EP_DB_PASSWORD", "secret")
    mock_session.request.side_effect = router({
        "/databaseconfig/configure": response_factory(200, {"success": True, "isConnected": True}),
    })
    code = _run(
        ["db-status", "--configure", "--server", "prod", "--database", "ep", "--auth", "SqlServer",
         "--username", "svc"],
        mock_session,
    )
    assert code == 0
    body = mock_session.request.call_args.kwargs["json"]
    assert body["password"] == "secret"
    saved = (temp_workdir / ".ep_results" / "database_connection.json").read_text(encoding="utf-8")
    assert "prod" in saved and "secret" not in saved
