from fastapi import APIRouter, Depends, Response

from epimetheus.api.deps import get_exporter
from epimetheus.services.exposition import MetricsExporter

router = APIRouter()


@router.get("", include_in_schema=False)
async def metrics(exporter: MetricsExporter = Depends(get_exporter)) -> Response:
    """Current metric snapshot in Prometheus text format."""
    return Response(content=exporter.render(), media_type=exporter.content_type)
