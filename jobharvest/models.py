"""
Core data models for JobHarvest.

Provides:
- SourceDescriptor: static description of one job-listing provider
- Job: normalized job record emitted by the parsers
- ProbeResult / ScrapeResult: results of probing and scraping
- CrawlConfig: runtime tuning for the crawl engine
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from jobharvest.errors import ConfigurationError


# ----------------------------- Enums -----------------------------

class SourceType(str, Enum):
    """How a source publishes its listings."""
    RSS = "rss"
    HTML = "html"


class TechniqueName(str, Enum):
    """Scrape techniques, in the order the prober tries them."""
    RSS = "rss"
    CUSTOM_HEADERS = "custom-headers"
    SIMPLE_FETCH = "simple-fetch"


class PaginationKind(str, Enum):
    """How the page parameter is computed for page N."""
    PAGE = "page"  # param = N
    OFFSET = "offset"  # param = (N - 1) * offset_step


class ParserKind(str, Enum):
    """Which HTML extraction path a source uses."""
    STRUCTURED = "structured"
    FORUM = "forum"  # free-text comment threads


# ----------------------------- Utilities -----------------------------

def normalize_text(s: str) -> str:
    """Collapse whitespace and strip."""
    return re.sub(r"\s+", " ", (s or "")).strip()


def parse_date(date_str: str) -> Optional[datetime]:
    """
    Parse RSS (RFC 2822) and common ISO-ish date strings.
    Returns None if parsing fails.
    """
    if not date_str:
        return None
    date_str = normalize_text(date_str)

    try:
        dt = parsedate_to_datetime(date_str)
        if dt is not None:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
    except (TypeError, ValueError, IndexError):
        pass

    formats = [
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d",
        "%B %d, %Y",
        "%b %d, %Y",
    ]
    for fmt in formats:
        try:
            dt = datetime.strptime(date_str, fmt)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
        except ValueError:
            continue

    return None


def to_iso(date_str: str) -> Optional[str]:
    """Convert a feed date string to ISO-8601, or None if unparseable."""
    dt = parse_date(date_str)
    return dt.isoformat() if dt else None


# ----------------------------- Source descriptor -----------------------------

@dataclass(frozen=True)
class SelectorSet:
    """CSS selectors for structured HTML sources."""
    container: str
    title: str
    company: str
    location: str
    link: str


@dataclass(frozen=True)
class Pagination:
    """Pagination policy for HTML sources."""
    enabled: bool = False
    max_pages: int = 3
    param: str = "page"
    early_termination: bool = False
    kind: PaginationKind = PaginationKind.PAGE
    offset_step: int = 25

    def page_value(self, page: int) -> int:
        """Value of the page parameter for 1-based page number `page`."""
        if self.kind == PaginationKind.OFFSET:
            return (page - 1) * self.offset_step
        return page


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Static, read-only description of a job-listing source.

    Lower priority values are scraped first.
    """

    name: str
    url: str
    type: SourceType
    rss_url: Optional[str] = None
    alternative_urls: Tuple[str, ...] = ()
    pagination: Optional[Pagination] = None
    selector: Optional[SelectorSet] = None
    priority: int = 999
    query_params: Tuple[Tuple[str, str], ...] = ()
    parser: ParserKind = ParserKind.STRUCTURED

    def validate(self) -> None:
        """Raise ConfigurationError unless the source is usable for its type."""
        if self.type == SourceType.RSS and not self.rss_url:
            raise ConfigurationError(f"RSS source {self.name!r} has no RSS URL")
        if self.type == SourceType.HTML and self.selector is None:
            raise ConfigurationError(f"HTML source {self.name!r} has no selector set")

    @property
    def paginates(self) -> bool:
        return bool(self.pagination and self.pagination.enabled)


# ----------------------------- Job -----------------------------

@dataclass
class Job:
    """
    Normalized job record.

    `id` is deterministic per source, document URL and position, so re-fetching
    the same page yields the same ids. Cross-source duplicates are removed by the
    dedupe pass at merge time.
    """

    id: str
    title: str
    company: str
    location: str
    url: str
    source: str
    description: Optional[str] = None
    posted_at: Optional[str] = None
    salary: Optional[str] = None

    def __post_init__(self):
        self.title = normalize_text(self.title)
        self.company = normalize_text(self.company)
        self.location = normalize_text(self.location)

    def to_dict(self) -> Dict[str, Any]:
        """Boundary representation (camelCase timestamps, optional fields dropped)."""
        d: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "source": self.source,
        }
        if self.description is not None:
            d["description"] = self.description
        if self.salary is not None:
            d["salary"] = self.salary
        if self.posted_at is not None:
            d["postedAt"] = self.posted_at
        return d


# ----------------------------- Results -----------------------------

@dataclass
class ProbeResult:
    """Outcome of probing a source for a working technique."""
    scrapable: bool
    technique: Optional[TechniqueName] = None
    job_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scrapable": self.scrapable,
            "technique": self.technique.value if self.technique else None,
            "jobCount": self.job_count,
            "error": self.error,
        }


@dataclass
class ScrapeResult:
    """Jobs returned by one scrape call, with provenance."""
    jobs: List[Job] = field(default_factory=list)
    total_jobs: int = 0
    from_cache: bool = False
    time_taken: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs": [j.to_dict() for j in self.jobs],
            "totalJobs": self.total_jobs,
            "fromCache": self.from_cache,
            "timeTaken": round(self.time_taken, 3),
        }


# ----------------------------- CrawlConfig -----------------------------

@dataclass
class CrawlConfig:
    """Runtime configuration for the crawl engine."""

    # Fetch queue
    max_concurrent_requests: int = 10
    domain_interval_s: float = 0.5
    request_timeout_s: float = 20.0

    # Orchestration
    scrape_timeout_s: float = 120.0
    alternative_batch_size: int = 3
    early_termination_threshold: int = 5
    probe_sample_size: int = 5

    # Cache lifetimes (seconds)
    all_ttl_s: float = 30 * 60
    source_ttl_s: float = 15 * 60
    query_ttl_s: float = 10 * 60
    negative_ttl_s: float = 5 * 60
    ledger_ttl_s: float = 24 * 60 * 60

    # Parser worker pool
    parser_pool: str = "process"  # process | thread
    parser_workers: int = 4

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
