from __future__ import annotations

from expansion_results.models.dto import (
    ConnectionStatus,
    ConnectionTestResult,
    DatabaseConnectionRequest,
    DatabaseConnectionResponse,
)

from .client import ApiClient

"""Backend datastore connection lifecycle (/databaseconfig/...)."""


def get_current_settings(client: ApiClient) -> DatabaseConnectionResponse:
    """Current connection settings (the backend never returns the password)."""
    return DatabaseConnectionResponse.from_json(client.get("/databaseconfig/current"))


def test_connection(client: ApiClient, request: DatabaseConnectionRequest) -> ConnectionTestResult:
    """Try a connection without saving it."""
    return ConnectionTestResult.from_json(client.post("/databaseconfig/test", request.to_json()))


def configure(client: ApiClient, request: DatabaseConnectionRequest) -> DatabaseConnectionResponse:
    """Test, then save the connection when the test succeeds."""
    return DatabaseConnectionResponse.from_json(
        client.post("/databaseconfig/configure", request.to_json())
    )


def disconnect(client: ApiClient) -> None:
    client.post("/databaseconfig/disconnect")


def get_status(client: ApiClient) -> ConnectionStatus:
    return ConnectionStatus.from_json(client.get("/databaseconfig/status"))
