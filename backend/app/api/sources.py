"""
Source listing and scrapeability probe endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from backend.app.core.service import get_service
from jobharvest.service import HarvestService

router = APIRouter(tags=["sources"])


# ==================== Schemas ====================

class SourceInfo(BaseModel):
    name: str
    url: str


class SourcesResponse(BaseModel):
    success: bool = True
    sources: List[SourceInfo]


class ProbeResponse(BaseModel):
    success: bool = True
    scrapable: bool
    technique: Optional[str] = None
    jobCount: int = 0
    error: Optional[str] = None


# ==================== Endpoints ====================

@router.get("/sources", response_model=SourcesResponse)
async def list_sources(service: HarvestService = Depends(get_service)):
    """All configured job sources (no network access)."""
    return SourcesResponse(sources=service.list_sources())


@router.get("/test-scrapeability", response_model=ProbeResponse)
async def test_scrapeability(
    site: Optional[str] = Query(None, description="Source name (case-insensitive)"),
    service: HarvestService = Depends(get_service),
):
    """
    Report whether a source can be scraped and with which technique.

    Results are cached; a negative answer is retried after a few minutes.
    """
    if not site:
        raise HTTPException(status_code=400, detail="Site parameter is required")

    result = await service.probe_scrapeability(site)
    return ProbeResponse(**result.to_dict())
