"""Tests for epimetheus.core.config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from epimetheus.core.config import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.IP == "0.0.0.0"
    assert settings.PORT == 8080
    assert settings.FILES == []
    assert settings.IGNORE_KEYS == []
    assert settings.INTERVAL == 60
    assert settings.METRIC_PREFIX == ""
    assert settings.LOG_FORMAT == "json"
    assert settings.LOG_LEVEL == "info"
    assert settings.COLLISION_POLICY == "overwrite"
    assert settings.PARSE_NUMERIC_STRINGS is False


def test_env_lists_are_comma_separated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EPI_FILES", "a.json, https://host/b.yaml ,,c.csv")
    monkeypatch.setenv("EPI_IGNORE_KEYS", "id,timestamp")
    monkeypatch.setenv("EPI_INTERVAL", "15")
    monkeypatch.setenv("EPI_METRIC_PREFIX", "app_")
    monkeypatch.setenv("EPI_LOG_FORMAT", "TERM")

    settings = Settings(_env_file=None)

    assert settings.FILES == ["a.json", "https://host/b.yaml", "c.csv"]
    assert settings.IGNORE_KEYS == ["id", "timestamp"]
    assert settings.INTERVAL == 15
    assert settings.METRIC_PREFIX == "app_"
    assert settings.LOG_FORMAT == "term"


def test_init_values_override_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EPI_PORT", "9000")

    assert Settings(_env_file=None, PORT=9100).PORT == 9100


@pytest.mark.parametrize(
    "overrides",
    [{"INTERVAL": 0}, {"PORT": 70000}, {"COLLISION_POLICY": "merge"}, {"FETCH_TIMEOUT": -1}],
)
def test_invalid_values_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
