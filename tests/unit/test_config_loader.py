from __future__ import annotations
import os
import pytest
from pathlib import Path
from expansion_results.config.loader import (
    DEFAULT_BASE_URL,
    AppConfig,
    ConfigError,
    load_config,
    load_env_file,
)


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.api.base_url == "http://ep.test/api"
    assert cfg.api.timeout_seconds == 5.0
    assert cfg.api.retries == 1
    assert cfg.view.default_page_size == 10
    assert cfg.view.default_metric == "Added Capacity"
    assert cfg.fallback_enabled is True


def test_load_config_missing_file_uses_defaults(temp_workdir: Path):
    cfg = load_config(temp_workdir / "config" / "not_exists.yml")
    assert cfg == AppConfig()
    assert cfg.api.base_url == DEFAULT_BASE_URL


def test_load_config_partial_file(write_config: Path):
    write_config.write_text("view:\n  default_page_size: 50\n", encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.view.default_page_size == 50
    assert cfg.api == AppConfig().api


def test_load_config_extra_field(write_config: Path):
    # add extra field that should be rejected by additionalProperties: false
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_invalid_page_size(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("default_page_size: 10", "default_page_size: 15")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("api: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_env_overrides(write_config: Path, monkeypatch):
    monkeypatch.setenv("EP_API_BASE_URL", "http://override/api")
    monkeypatch.setenv("EP_API_TIMEOUT", "2.5")
    cfg = load_config(write_config)
    assert cfg.api.base_url == "http://override/api"
    assert cfg.api.timeout_seconds == 2.5


def test_env_timeout_must_be_numeric(write_config: Path, monkeypatch):
    monkeypatch.setenv("EP_API_TIMEOUT", "soon")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_env_file_is_loaded(temp_workdir: Path):
    (temp_workdir / ".env").write_text("EP_API_BASE_URL=http://from-dotenv/api\n", encoding="utf-8")
    try:
        assert load_env_file(temp_workdir / ".env") is True
        assert load_config().api.base_url == "http://from-dotenv/api"
    finally:
        os.environ.pop("EP_API_BASE_URL", None)
    assert load_env_file(temp_workdir / "missing.env") is False
