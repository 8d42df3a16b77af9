from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Sequence

import uvicorn
from pydantic import ValidationError

from epimetheus.core.config import VERSION, Settings
from epimetheus.core.errors import ConfigError
from epimetheus.core.logging_config import configure_logging
from epimetheus.main import create_app

LOG = logging.getLogger("epimetheus")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epimetheus",
        description="Expose json/yaml/csv files (local and over http) as Prometheus metrics",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--listen-addr", dest="IP", help="Address to bind (env EPI_IP, default 0.0.0.0)")
    parser.add_argument("--port", dest="PORT", type=int, help="Port to bind (env EPI_PORT, default 8080)")
    parser.add_argument(
        "--files",
        dest="FILES",
        nargs="+",
        help="Paths or http(s) URLs to read; append #json, #yaml or #csv to force a format (env EPI_FILES)",
    )
    parser.add_argument("--ignore-keys", dest="IGNORE_KEYS", nargs="+", help="Keys to skip (env EPI_IGNORE_KEYS)")
    parser.add_argument("--interval", dest="INTERVAL", type=float, help="Refresh interval seconds (env EPI_INTERVAL)")
    parser.add_argument("--metric-prefix", dest="METRIC_PREFIX", help="Prefix for every metric name (env EPI_METRIC_PREFIX)")
    parser.add_argument("--log-format", dest="LOG_FORMAT", help="json or term (env EPI_LOG_FORMAT)")
    parser.add_argument("--log-level", dest="LOG_LEVEL", help="Log level (env EPI_LOG_LEVEL)")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, letting explicit flags win."""
    overrides: dict[str, Any] = {}
    for key, value in vars(args).items():
        if value is None:
            continue
        if isinstance(value, list):
            value = ",".join(value)
        overrides[key] = value
    return Settings(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        configure_logging()
        LOG.error("invalid configuration: %s", exc)
        return 2

    configure_logging(settings.LOG_FORMAT, settings.LOG_LEVEL)
    LOG.info("starting epimetheus version=%s listen_addr=%s port=%d", VERSION, settings.IP, settings.PORT)

    try:
        app = create_app(settings)
    except ConfigError as exc:
        LOG.error("invalid configuration: %s", exc)
        return 2

    uvicorn.run(app, host=settings.IP, port=settings.PORT, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
