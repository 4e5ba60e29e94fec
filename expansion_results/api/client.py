from __future__ import annotations

import logging
from typing import Any

import requests

"""HTTP client for the Expansion Plan REST API.

Thin wrapper over a requests.Session:
- JSON in / JSON out, one timeout for every request (30 s by default)
- transport failures (no response) raise TransportError
- 4xx/5xx responses raise ApiError carrying the status and the server message,
  preferring the body's `message` field
- collection endpoints answering with anything but a list of objects raise
  ApiError with the 200 status
"""

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT",
    "ApiClientError",
    "TransportError",
    "ApiError",
    "ApiClient",
]

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://localhost:7087/api"
DEFAULT_TIMEOUT = 30.0


class ApiClientError(Exception):
    """Base class for request failures."""

    def __init__(self, message: str, endpoint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint


class TransportError(ApiClientError):
    """No usable response: connection refused, DNS failure, timeout."""

    status = -1


class ApiError(ApiClientError):
    """Server answered with an error status."""

    def __init__(self, status: int, message: str, endpoint: str = "", body: Any = None) -> None:
        super().__init__(message, endpoint)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.message}"


def _error_message(response: requests.Response) -> tuple[str, Any]:
    """Pick the most useful message from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"]), body
    if isinstance(body, str) and body.strip():
        return body.strip(), body
    return response.reason or f"HTTP {response.status_code}", body


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        verify_tls: bool = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.session.verify = verify_tls

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        # drop unset query params, the backend treats absence as "no filter"
        clean_params = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        logger.debug(f"[API] {method.upper()} {path}")
        try:
            response = self.session.request(
                method.upper(),
                url,
                params=clean_params or None,
                json=json,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"[API] No response received: {path} timed out after {self.timeout}s")
            raise TransportError(f"connection failed: request timed out ({e})", path) from e
        except requests.RequestException as e:
            logger.error(f"[API] No response received: {e}")
            raise TransportError(f"connection failed: {e}", path) from e

        if response.status_code >= 400:
            message, body = _error_message(response)
            logger.error(f"[API] Error {response.status_code}: {message}")
            raise ApiError(response.status_code, message, path, body)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, f"invalid JSON response: {e}", path) from e

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def get_list(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """GET a collection endpoint; the body must be a JSON array of objects."""
        data = self.get(path, params)
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            logger.error(f"[API] Invalid response shape from {path}: {type(data).__name__}")
            raise ApiError(200, "invalid response shape: expected a list of objects", path, data)
        return data

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
