from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from epimetheus.api.deps import get_scheduler
from epimetheus.schemas.source import SourceStatusOut
from epimetheus.streams.refresher import RefreshScheduler


router = APIRouter()


@router.get("/", response_model=list[SourceStatusOut])
async def list_sources(scheduler: RefreshScheduler = Depends(get_scheduler)) -> list[SourceStatusOut]:
    return [SourceStatusOut.model_validate(s) for s in scheduler.statuses()]


@router.get("/names", response_model=dict[str, list[str]])
async def list_source_metric_names(
    source_id: str,
    scheduler: RefreshScheduler = Depends(get_scheduler),
) -> dict[str, list[str]]:
    """Metric names currently owned by one source."""
    if source_id not in scheduler.status:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source not found")
    return {source_id: sorted(scheduler.registry.names_for(source_id))}
