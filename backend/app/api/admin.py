"""
Admin endpoints for cache control and runtime introspection.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.app.core.service import get_service
from jobharvest.service import HarvestService

router = APIRouter(tags=["admin"])


# ==================== Schemas ====================

class ClearCacheResponse(BaseModel):
    success: bool = True
    message: str


class PerformanceResponse(BaseModel):
    success: bool = True
    metrics: Dict[str, Any]


# ==================== Endpoints ====================

@router.post("/clear-cache", response_model=ClearCacheResponse)
async def clear_cache(service: HarvestService = Depends(get_service)):
    """Drop cached jobs, probe results and query results."""
    return ClearCacheResponse(**service.clear_cache())


@router.get("/performance", response_model=PerformanceResponse)
async def performance(service: HarvestService = Depends(get_service)):
    """Cache sizes, request queue state, parser pool stats and memory usage."""
    return PerformanceResponse(metrics=service.performance_metrics())
