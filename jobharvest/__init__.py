"""
JobHarvest: rate-limited job listing crawler.

Scrapes a fixed set of job boards through a shared request queue, picks a
working technique per source, and serves results from a tiered in-memory
cache.
"""

__version__ = "1.0.0"

from jobharvest.models import CrawlConfig, Job, ProbeResult, ScrapeResult, SourceDescriptor
from jobharvest.service import HarvestService

__all__ = [
    "CrawlConfig",
    "Job",
    "ProbeResult",
    "ScrapeResult",
    "SourceDescriptor",
    "HarvestService",
]
