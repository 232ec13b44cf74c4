"""
Job query endpoints: scrape (with filters) and aggregate statistics.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.app.core.config import Settings, get_settings
from backend.app.core.service import get_service
from jobharvest.service import HarvestService

router = APIRouter(tags=["jobs"])


# ==================== Schemas ====================

class JobOut(BaseModel):
    """Job record as exposed by the API."""

    id: str
    title: str
    company: str
    location: str
    url: str
    source: str
    description: Optional[str] = None
    salary: Optional[str] = None
    postedAt: Optional[str] = None


class ScrapeJobsResponse(BaseModel):
    success: bool = True
    jobs: List[JobOut]
    totalJobs: int
    fromCache: bool
    timeTaken: float


class NameCount(BaseModel):
    name: str
    count: int


class JobStats(BaseModel):
    totalJobs: int
    bySource: List[NameCount]
    byLocation: List[NameCount]
    topCompanies: List[NameCount]
    remoteJobs: int


class JobStatsResponse(BaseModel):
    success: bool = True
    stats: JobStats
    fromCache: bool


# ==================== Endpoints ====================

@router.get("/scrape-jobs", response_model=ScrapeJobsResponse)
async def scrape_jobs(
    source: str = Query("all", description="Source name or 'all'"),
    limit: Optional[int] = Query(None, ge=1, description="Max jobs to return"),
    query: Optional[str] = Query(None, description="Substring of title, company or description"),
    location: Optional[str] = Query(None, description="Substring of location"),
    remote: Optional[bool] = Query(None, description="Only jobs whose location mentions remote"),
    service: HarvestService = Depends(get_service),
    settings: Settings = Depends(get_settings),
):
    """
    Scrape jobs from one or all sources, serving cached results when fresh.

    Raises a 504 if the scrape exceeds its timeout.
    """
    result = await service.scrape(
        source=source,
        limit=limit or settings.default_limit,
        query=query,
        location=location,
        remote=remote,
    )
    return ScrapeJobsResponse(**result.to_dict())


@router.get("/job-stats", response_model=JobStatsResponse)
async def job_stats(service: HarvestService = Depends(get_service)):
    """Counts by source, location and company over the current job set."""
    return JobStatsResponse(**(await service.job_stats()))
