"""Tests for YAML configuration loading and CLI overrides."""

from types import SimpleNamespace

import pytest

from cli_config import apply_cli_overrides, load_config
from constants import Constants, _load_yaml_config, apply_config


@pytest.fixture(autouse=True)
def restore_constants(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(Constants.CONFIG_ENV, raising=False)
    for name in ("REQUEST_TIMEOUT", "OSV_QUERY_URL", "RESOLVE_MAX_WORKERS", "MANAGED_GROUP_PREFIX"):
        monkeypatch.setattr(Constants, name, getattr(Constants, name))


def test_apply_config_reads_section_and_coerces_ints():
    apply_config({"gavlens": {"request_timeout": "30", "osv_url": "https://osv.internal/v1/query", "bogus": 1}})

    assert Constants.REQUEST_TIMEOUT == 30
    assert Constants.OSV_QUERY_URL == "https://osv.internal/v1/query"


def test_env_variable_names_config_file(monkeypatch, tmp_path):
    path = tmp_path / "env.yml"
    path.write_text("managed_group_prefix: io.micronaut\n", encoding="utf-8")
    monkeypatch.setenv(Constants.CONFIG_ENV, str(path))

    assert _load_yaml_config() == {"managed_group_prefix": "io.micronaut"}


def test_missing_config_is_empty():
    assert _load_yaml_config("/nonexistent/gavlens.yml") == {}


def test_invalid_yaml_is_logged_and_ignored(tmp_path, caplog):
    path = tmp_path / "broken.yml"
    path.write_text("gavlens: [unclosed\n", encoding="utf-8")

    with caplog.at_level("WARNING"):
        load_config(SimpleNamespace(CONFIG=str(path)))

    assert "Could not read config" in caplog.text


def test_cli_workers_override(caplog):
    apply_cli_overrides(SimpleNamespace(WORKERS=8, VERSIONS=None))
    assert Constants.RESOLVE_MAX_WORKERS == 8

    with caplog.at_level("WARNING"):
        apply_cli_overrides(SimpleNamespace(WORKERS=0, VERSIONS=None))
    assert Constants.RESOLVE_MAX_WORKERS == 8
    assert "--workers" in caplog.text
