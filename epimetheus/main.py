from __future__ import annotations

import logging

from fastapi import FastAPI

from epimetheus.api.metrics import router as metrics_router
from epimetheus.api.v1.api import api_router
from epimetheus.api.v1.endpoints import health
from epimetheus.core.config import VERSION, Settings, get_settings
from epimetheus.core.logging_config import install_error_handler, install_request_logging
from epimetheus.schemas.source import parse_sources
from epimetheus.services.exposition import MetricsExporter
from epimetheus.services.registry import MetricRegistry
from epimetheus.streams.refresher import RefreshScheduler, refresher_lifespan

LOG = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the exporter app: registry, scheduler and HTTP routes.

    Raises ConfigError when no usable sources are configured.
    """
    settings = settings or get_settings()
    sources = parse_sources(settings.FILES)

    registry = MetricRegistry(settings.COLLISION_POLICY)
    exporter = MetricsExporter(registry)
    scheduler = RefreshScheduler(
        sources,
        registry,
        interval=settings.INTERVAL,
        ignore_keys=settings.IGNORE_KEYS,
        prefix=settings.METRIC_PREFIX,
        fetch_timeout=settings.FETCH_TIMEOUT,
        parse_numeric_strings=settings.PARSE_NUMERIC_STRINGS,
        internal=exporter.internal,
        fetcher_config={"verify_ssl": settings.VERIFY_SSL, "timeout": settings.FETCH_TIMEOUT},
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=refresher_lifespan(scheduler),
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.exporter = exporter
    app.state.scheduler = scheduler

    if settings.REQUEST_LOGS_ENABLED:
        install_request_logging(app)
    install_error_handler(app)

    app.include_router(metrics_router, prefix=settings.METRICS_PATH, tags=["metrics"])
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(api_router, prefix=settings.API_PREFIX)

    LOG.info(
        "exporter configured sources=%d interval=%gs prefix=%r ignore_keys=%d",
        len(sources),
        settings.INTERVAL,
        settings.METRIC_PREFIX,
        len(settings.IGNORE_KEYS),
    )
    return app
