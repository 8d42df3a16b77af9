"""Tests for the epimetheus command line entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from epimetheus import run


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(run, "configure_logging", lambda *args, **kwargs: None)


def test_flags_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EPI_PORT", "9000")
    monkeypatch.setenv("EPI_METRIC_PREFIX", "env_")
    args = run.build_parser().parse_args(
        ["--port", "9100", "--files", "a.json", "b.yaml,c.csv", "--ignore-keys", "id", "--interval", "5"]
    )

    settings = run.settings_from_args(args)

    assert settings.PORT == 9100
    assert settings.FILES == ["a.json", "b.yaml", "c.csv"]
    assert settings.IGNORE_KEYS == ["id"]
    assert settings.INTERVAL == 5
    assert settings.METRIC_PREFIX == "env_"


def test_main_without_sources_exits_with_config_error() -> None:
    assert run.main([]) == 2


def test_main_with_invalid_value_exits_with_config_error(tmp_path: Path) -> None:
    assert run.main(["--files", str(tmp_path / "a.json"), "--interval", "0"]) == 2


def test_main_serves_app_with_uvicorn(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: dict[str, Any] = {}

    def fake_run(app: Any, **kwargs: Any) -> None:
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(run.uvicorn, "run", fake_run)
    source = tmp_path / "a.json"

    code = run.main(["--files", str(source), "--listen-addr", "127.0.0.1", "--port", "9999"])

    assert code == 0
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 9999
    assert calls["log_config"] is None
    assert [s.id for s in calls["app"].state.scheduler.sources] == [str(source)]
