from fastapi import APIRouter

from epimetheus.api.v1.endpoints import health
from epimetheus.api.v1.endpoints import sources

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(sources.router, prefix="/sources", tags=["sources"])
