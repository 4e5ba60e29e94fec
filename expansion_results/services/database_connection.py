from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from ..api import database_config as db_api
from ..api.client import ApiClient, ApiClientError
from ..models.dto import (
    AUTH_SQL_SERVER,
    AUTH_WINDOWS,
    ConnectionTestResult,
    DatabaseConnectionRequest,
    DatabaseConnectionResponse,
)

"""Backend datastore connection session.

Holds the connection form of one view (server, database, authentication) and
drives the /databaseconfig endpoints. Request failures are stored on
`session.error` rather than raised; only local validation raises, before any
request is made. The password lives in memory only; the rest of the form is
saved to a JSON file after a successful configure.
"""

__all__ = [
    "FORM_STATE_FILE",
    "ValidationError",
    "ConnectionForm",
    "DatabaseConnectionSession",
]

logger = logging.getLogger(__name__)

FORM_STATE_FILE = "database_connection.json"


class ValidationError(Exception):
    """Local form validation failure (never reaches the network)."""


@dataclass(frozen=True)
class ConnectionForm:
    server_name: str = ""
    database_name: str = ""
    authentication_type: str = AUTH_WINDOWS
    username: str = ""
    trust_server_certificate: bool = True
    connection_timeout: int = 30

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectionForm:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def validate(self) -> None:
        if not self.server_name.strip():
            raise ValidationError("server name is required")
        if not self.database_name.strip():
            raise ValidationError("database name is required")
        if self.authentication_type not in (AUTH_WINDOWS, AUTH_SQL_SERVER):
            raise ValidationError(f"unknown authentication type: {self.authentication_type}")
        if self.authentication_type == AUTH_SQL_SERVER and not self.username.strip():
            raise ValidationError("username is required for SQL Server authentication")
        if self.connection_timeout <= 0:
            raise ValidationError("connection timeout must be positive")


class DatabaseConnectionSession:
    """Connection form state plus the results of the last action.

    Args:
        client: API client
        state_path: JSON file for the saved form (no password); None disables saving
    """

    def __init__(self, client: ApiClient, state_path: Path | None = None) -> None:
        self.client = client
        self.state_path = state_path
        self.form = self._load_form()
        self.password = ""
        self.is_connected = False
        self.error: str | None = None
        self.test_result: ConnectionTestResult | None = None
        self.current_settings: DatabaseConnectionResponse | None = None

    def _load_form(self) -> ConnectionForm:
        if self.state_path is None or not self.state_path.exists():
            return ConnectionForm()
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
            return ConnectionForm.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"ignoring unreadable connection state {self.state_path}: {e}")
            return ConnectionForm()

    def _save_form(self) -> None:
        if self.state_path is None:
            return
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(json.dumps(asdict(self.form), indent=2), encoding="utf-8")

    def update(self, **changes: Any) -> None:
        """Change form fields; clears the previous test result and error."""
        self.form = replace(self.form, **changes)
        self.test_result = None
        self.error = None

    def request(self) -> DatabaseConnectionRequest:
        self.form.validate()
        sql_auth = self.form.authentication_type == AUTH_SQL_SERVER
        return DatabaseConnectionRequest(
            server_name=self.form.server_name.strip(),
            database_name=self.form.database_name.strip(),
            authentication_type=self.form.authentication_type,
            username=self.form.username if sql_auth else None,
            password=self.password if sql_auth else None,
            trust_server_certificate=self.form.trust_server_certificate,
            connection_timeout=self.form.connection_timeout,
        )

    def refresh(self) -> DatabaseConnectionResponse | None:
        """Load the backend's current settings; an unreachable backend means disconnected."""
        self.error = None
        try:
            settings = db_api.get_current_settings(self.client)
        except ApiClientError as e:
            logger.info(f"could not fetch database settings: {e.message}")
            self.is_connected = False
            return None
        self.current_settings = settings
        self.is_connected = settings.is_connected
        if settings.is_connected and settings.server_name:
            self.form = replace(
                self.form,
                server_name=settings.server_name or "",
                database_name=settings.database_name or "",
                authentication_type=settings.authentication_type or AUTH_WINDOWS,
                username=settings.username or "",
            )
        return settings

    def test(self) -> ConnectionTestResult | None:
        """Test the form's connection without saving it.

        Raises:
            ValidationError: Missing server or database name
        """
        req = self.request()
        self.test_result = None
        self.error = None
        try:
            result = db_api.test_connection(self.client, req)
        except ApiClientError as e:
            self.error = e.message or "Connection test failed"
            self.test_result = ConnectionTestResult(success=False, message=self.error, response_time_ms=0)
            return None
        self.test_result = result
        return result

    def save(self) -> DatabaseConnectionResponse | None:
        """Configure the backend connection; saves the form on success.

        Raises:
            ValidationError: Missing server or database name
        """
        req = self.request()
        self.error = None
        try:
            result = db_api.configure(self.client, req)
        except ApiClientError as e:
            self.error = e.message or "Failed to save connection"
            return None
        if not result.success:
            self.error = result.message or "Failed to configure connection"
            return None
        self.is_connected = True
        self.current_settings = result
        self._save_form()
        return result

    def disconnect(self) -> bool:
        self.error = None
        try:
            db_api.disconnect(self.client)
        except ApiClientError as e:
            self.error = e.message or "Failed to disconnect"
            return False
        self.is_connected = False
        self.current_settings = None
        self.test_result = None
        return True
