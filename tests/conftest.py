# Shared pytest fixtures
from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from expansion_results.api.client import ApiClient
from expansion_results.logging.init import reset_logging
from expansion_results.models.result_row import ResultRow
from expansion_results.services.fallback import clear_cache

BASE_URL = "http://ep.test/api"


@pytest.fixture(autouse=True)
def _clean_global_state():
    reset_logging()
    yield
    reset_logging()
    clear_cache()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("EP_API_BASE_URL", raising=False)
        monkeypatch.delenv("EP_API_TIMEOUT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""api:
  base_url: {BASE_URL}
  timeout_seconds: 5
  retries: 1
view:
  default_page_size: 10
  default_metric: Added Capacity
fallback:
  enabled: true
state_directory: .ep_results
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ep_results.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_response(status: int = 200, body: Any = None, text: str | None = None, reason: str = "") -> MagicMock:
    """requests.Response stand-in with the attributes ApiClient reads."""
    resp = MagicMock()
    resp.status_code = status
    resp.reason = reason
    if body is not None:
        raw = json.dumps(body)
        resp.json.return_value = body
    else:
        raw = text or ""
        resp.json.side_effect = ValueError("no json")
    resp.text = raw
    resp.content = raw.encode("utf-8")
    return resp


@pytest.fixture()
def response_factory() -> Callable[..., MagicMock]:
    return make_response


@pytest.fixture()
def mock_session() -> MagicMock:
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture()
def api_client(mock_session: MagicMock) -> ApiClient:
    return ApiClient(base_url=BASE_URL, timeout=5, session=mock_session)


def route(routes: dict[str, Any]) -> Callable[..., Any]:
    """side_effect for session.request dispatching on the URL path.

    Values are responses, exceptions (raised) or callables returning either.
    """
    def _handler(method: str, url: str, **kwargs: Any) -> Any:
        path = url[len(BASE_URL):]
        if path not in routes:
            return make_response(404, {"message": f"no route {path}"})
        target = routes[path]
        if callable(target) and not isinstance(target, MagicMock):
            target = target()
        if isinstance(target, BaseException):
            raise target
        return target
    return _handler


@pytest.fixture()
def router() -> Callable[[dict[str, Any]], Callable[..., Any]]:
    return route


def row(tech: str, bc: int, status: str = "Rejected", year: int = 2030, **metrics: Any) -> ResultRow:
    return ResultRow(technology=tech, build_cycle=bc, status=status, year=year, metrics=metrics)


@pytest.fixture()
def make_row() -> Callable[..., ResultRow]:
    return row


def study_result_json(unit_combo: str, iteration: int, status: str = "Rejected", year: str = "2030", **values: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "studyResultsId": iteration * 100 + len(unit_combo),
        "unitCombo": unit_combo,
        "iteration": iteration,
        "status": status,
        "year": year,
    }
    body.update(values)
    return body


@pytest.fixture()
def study_json() -> Callable[..., dict[str, Any]]:
    return study_result_json
