from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import load_dotenv
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config (config/ep_results.yml by default)
- Validate against the bundled JSON schema (unknown keys rejected)
- Apply defaults for every missing key; a missing file means "all defaults"
- Apply environment overrides (EP_API_BASE_URL, EP_API_TIMEOUT), optionally
  read from a .env file
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/ep_results.yml")

DEFAULT_BASE_URL = "https://localhost:7087/api"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 1
DEFAULT_PAGE_SIZE = 20
DEFAULT_METRIC = "Added Capacity"
DEFAULT_STATE_DIRECTORY = ".ep_results"

ENV_BASE_URL = "EP_API_BASE_URL"
ENV_TIMEOUT = "EP_API_TIMEOUT"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES  # automatic retries before falling back
    verify_tls: bool = True


@dataclass(frozen=True)
class ViewConfig:
    default_page_size: int = DEFAULT_PAGE_SIZE
    default_metric: str = DEFAULT_METRIC


@dataclass(frozen=True)
class AppConfig:
    api: ApiConfig = ApiConfig()
    view: ViewConfig = ViewConfig()
    fallback_enabled: bool = True
    state_directory: str = DEFAULT_STATE_DIRECTORY


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails validation (unknown keys, wrong types, bad page size).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(cfg: AppConfig) -> AppConfig:
    api = cfg.api
    base_url = os.getenv(ENV_BASE_URL)
    if base_url:
        api = replace(api, base_url=base_url)
    timeout = os.getenv(ENV_TIMEOUT)
    if timeout:
        try:
            api = replace(api, timeout_seconds=float(timeout))
        except ValueError as e:
            raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {timeout!r}") from e
    return replace(cfg, api=api)


def load_env_file(path: Path = Path(".env"), override: bool = False) -> bool:
    """Load a .env file with python-dotenv. Returns True when a file was loaded."""
    if not path.exists():
        return False
    return bool(load_dotenv(dotenv_path=path, override=override))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return _apply_env_overrides(AppConfig())
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    api_raw = data.get("api", {})
    view_raw = data.get("view", {})
    cfg = AppConfig(
        api=ApiConfig(
            base_url=api_raw.get("base_url", DEFAULT_BASE_URL),
            timeout_seconds=float(api_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            retries=api_raw.get("retries", DEFAULT_RETRIES),
            verify_tls=api_raw.get("verify_tls", True),
        ),
        view=ViewConfig(
            default_page_size=view_raw.get("default_page_size", DEFAULT_PAGE_SIZE),
            default_metric=view_raw.get("default_metric", DEFAULT_METRIC),
        ),
        fallback_enabled=data.get("fallback", {}).get("enabled", True),
        state_directory=data.get("state_directory", DEFAULT_STATE_DIRECTORY),
    )
    return _apply_env_overrides(cfg)
