from __future__ import annotations

import pytest
import requests

from expansion_results.api.client import ApiClient, ApiError, TransportError

BASE_URL = "http://ep.test/api"


def test_get_builds_url_and_drops_empty_params(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, [{"epScenarioId": 1}])
    data = api_client.get("/results/study/5", {"year": None, "iteration": 2, "x": ""})
    assert data == [{"epScenarioId": 1}]
    args, kwargs = mock_session.request.call_args
    assert args == ("GET", f"{BASE_URL}/results/study/5")
    assert kwargs["params"] == {"iteration": 2}
    assert kwargs["timeout"] == 5
    assert kwargs["json"] is None


def test_no_params_sends_none(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, [])
    api_client.get("/scenarios")
    assert mock_session.request.call_args.kwargs["params"] is None


def test_json_header_and_tls_flag(mock_session):
    ApiClient(base_url=BASE_URL + "/", session=mock_session, verify_tls=False)
    assert mock_session.headers["Content-Type"] == "application/json"
    assert mock_session.verify is False


def test_empty_body_returns_none(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(204)
    assert api_client.delete("/scenarios/3") is None


def test_error_prefers_message_field(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(400, {"message": "Invalid scenario", "code": 7})
    with pytest.raises(ApiError) as exc:
        api_client.get("/scenarios/0")
    err = exc.value
    assert err.status == 400
    assert err.message == "Invalid scenario"
    assert err.body == {"message": "Invalid scenario", "code": 7}
    assert err.endpoint == "/scenarios/0"
    assert str(err) == "HTTP 400: Invalid scenario"


def test_error_falls_back_to_text_then_reason(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(500, text="database offline")
    with pytest.raises(ApiError) as exc:
        api_client.get("/health")
    assert exc.value.message == "database offline"

    mock_session.request.return_value = response_factory(503, reason="Service Unavailable")
    with pytest.raises(ApiError) as exc:
        api_client.get("/health")
    assert exc.value.message == "Service Unavailable"


@pytest.mark.parametrize(
    "error",
    [requests.ConnectionError("refused"), requests.Timeout("slow")],
)
def test_transport_failures(api_client: ApiClient, mock_session, error):
    mock_session.request.side_effect = error
    with pytest.raises(TransportError) as exc:
        api_client.get("/scenarios")
    assert exc.value.status == -1
    assert exc.value.message.startswith("connection failed")


def test_request_logged_at_debug(api_client: ApiClient, mock_session, caplog, response_factory):
    mock_session.request.return_value = response_factory(200, [])
    with caplog.at_level("DEBUG", logger="expansion_results.api.client"):
        api_client.post("/databaseconfig/disconnect")
    assert "[API] POST /databaseconfig/disconnect" in caplog.text


def test_set_base_url(api_client: ApiClient, mock_session, response_factory):
    api_client.set_base_url("http://other/api/")
    mock_session.request.return_value = response_factory(200, {"status": "ok"})
    api_client.get("/health")
    assert mock_session.request.call_args.args[1] == "http://other/api/health"


def test_get_list_accepts_arrays_of_objects(api_client: ApiClient, mock_session, response_factory):
    mock_session.request.return_value = response_factory(200, [{"a": 1}])
    assert api_client.get_list("/scenarios") == [{"a": 1}]
    mock_session.request.return_value = response_factory(204)
    assert api_client.get_list("/scenarios") == []


@pytest.mark.parametrize("body", [{"items": []}, [1, 2], "text"])
def test_get_list_rejects_other_shapes(api_client: ApiClient, mock_session, response_factory, body):
    mock_session.request.return_value = response_factory(200, body)
    with pytest.raises(ApiError) as exc:
        api_client.get_list("/results/study/1")
    assert exc.value.status == 200
    assert exc.value.endpoint == "/results/study/1"
    assert exc.value.body == body
    assert "invalid response shape" in str(exc.value)
