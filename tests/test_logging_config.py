"""Tests for epimetheus.core.logging_config."""

from __future__ import annotations

import json
import logging

import pytest

from epimetheus.core.config import VERSION
from epimetheus.core.logging_config import JsonLineFormatter, SimpleConsoleFormatter, configure_logging


def _record(msg: str = "refreshed source=%s", *args: object) -> logging.LogRecord:
    return logging.LogRecord("epimetheus.test", logging.INFO, __file__, 1, msg, args or ("a.json",), None)


def test_json_formatter_emits_one_object_per_record() -> None:
    line = JsonLineFormatter().format(_record())

    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "epimetheus.test"
    assert payload["msg"] == "refreshed source=a.json"
    assert payload["version"] == VERSION
    assert "request_id" not in payload


def test_console_formatter_includes_request_id() -> None:
    record = _record()
    record.request_id = "abc123"

    line = SimpleConsoleFormatter().format(record)

    assert "| INFO | epimetheus.test | refreshed source=a.json | rid=abc123" in line


@pytest.mark.usefixtures("restore_logging")
@pytest.mark.parametrize(("fmt", "formatter"), [("term", SimpleConsoleFormatter), ("json", JsonLineFormatter)])
def test_configure_logging_installs_formatter(fmt: str, formatter: type) -> None:
    configure_logging(fmt, "debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, formatter)
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.usefixtures("restore_logging")
def test_configure_logging_falls_back_to_json_and_info() -> None:
    configure_logging("xml", "loud")

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert isinstance(root.handlers[0].formatter, JsonLineFormatter)
