"""Expansion Plan REST API client and endpoint groups."""

from . import database_config, results, scenarios
from .client import ApiClient, ApiClientError, ApiError, TransportError

__all__ = [
    "ApiClient",
    "ApiClientError",
    "ApiError",
    "TransportError",
    "database_config",
    "results",
    "scenarios",
]
