from fastapi import Request

from epimetheus.services.exposition import MetricsExporter
from epimetheus.streams.refresher import RefreshScheduler


def get_exporter(request: Request) -> MetricsExporter:
    """FastAPI dependency returning the app's metrics exporter."""
    return request.app.state.exporter


def get_scheduler(request: Request) -> RefreshScheduler:
    """FastAPI dependency returning the app's refresh scheduler."""
    return request.app.state.scheduler
