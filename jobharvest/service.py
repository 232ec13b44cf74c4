"""
HarvestService: the query and admin surface over the crawl engine.

Owns one cache, one ledger, one request queue and one parser pool, and
wires them into the prober, techniques and orchestrator. The FastAPI app
and the CLI both talk to this class only.
"""

from __future__ import annotations

import asyncio
import logging
import resource
import sys
import time
from collections import Counter
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from jobharvest.cache import SCOPE_ALL, SCOPE_QUERY, HeaderCache, IncrementalLedger, TieredCache
from jobharvest.extract.pool import ParserPool
from jobharvest.fetchers.queue import RequestQueue, SendFn
from jobharvest.models import CrawlConfig, Job, ProbeResult, ScrapeResult, SourceDescriptor
from jobharvest.orchestrator import ALL_SOURCES, ScrapeOrchestrator
from jobharvest.prober import Prober
from jobharvest.sources import SourceRegistry
from jobharvest.techniques import build_techniques

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "job-stats"
STATS_SCRAPE_LIMIT = 10000
STATS_TOP_N = 20


def query_cache_key(
    source: str,
    query: Optional[str],
    location: Optional[str],
    remote: Optional[bool],
) -> str:
    remote_key = "" if remote is None else str(bool(remote)).lower()
    return f"query-{source}-{query or ''}-{location or ''}-{remote_key}"


def filter_jobs(
    jobs: Iterable[Job],
    query: Optional[str] = None,
    location: Optional[str] = None,
    remote: Optional[bool] = None,
) -> List[Job]:
    """Substring filters on title/company/description, location and remoteness."""
    filtered = list(jobs)

    if query:
        q = query.lower()
        filtered = [
            j for j in filtered
            if q in j.title.lower()
            or q in j.company.lower()
            or (j.description and q in j.description.lower())
        ]

    if location:
        loc = location.lower()
        filtered = [j for j in filtered if loc in j.location.lower()]

    if remote:
        filtered = [j for j in filtered if "remote" in j.location.lower()]

    return filtered


def _location_key(location: str) -> str:
    # "City, Country" counts under the part after the first comma
    parts = location.split(",")
    return parts[1].strip() if len(parts) > 1 else location.strip()


def _ranked(counter: Counter, top: Optional[int] = None) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(top)]


def compute_job_stats(jobs: Iterable[Job]) -> Dict[str, Any]:
    by_source: Counter = Counter()
    by_location: Counter = Counter()
    companies: Counter = Counter()
    total = 0
    remote = 0

    for job in jobs:
        total += 1
        by_source[job.source] += 1
        by_location[_location_key(job.location)] += 1
        companies[job.company] += 1
        if "remote" in job.location.lower():
            remote += 1

    return {
        "totalJobs": total,
        "bySource": _ranked(by_source),
        "byLocation": _ranked(by_location, STATS_TOP_N),
        "topCompanies": _ranked(companies, STATS_TOP_N),
        "remoteJobs": remote,
    }


def memory_usage() -> Dict[str, int]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is kilobytes on Linux, bytes on macOS
    scale = 1 if sys.platform == "darwin" else 1024
    return {
        "maxRss": usage.ru_maxrss * scale,
        "userTime": int(usage.ru_utime * 1000),
        "systemTime": int(usage.ru_stime * 1000),
    }


class HarvestService:
    def __init__(
        self,
        registry: SourceRegistry,
        queue: RequestQueue,
        parsers: ParserPool,
        cache: TieredCache,
        ledger: IncrementalLedger,
        config: Optional[CrawlConfig] = None,
        header_cache: Optional[HeaderCache] = None,
    ):
        self.config = config or CrawlConfig()
        self.registry = registry
        self.queue = queue
        self.parsers = parsers
        self.cache = cache
        self.ledger = ledger
        if header_cache is None:
            header_cache = HeaderCache(self.config.query_ttl_s, clock=cache.clock)
        self.header_cache = header_cache
        self.techniques = build_techniques(
            queue, parsers, cache, ledger, self.config, header_cache=self.header_cache,
        )
        self.prober = Prober(registry, self.techniques, cache, self.config)
        self.orchestrator = ScrapeOrchestrator(
            registry, self.prober, self.techniques, cache, self.config,
        )

    @classmethod
    def create(
        cls,
        config: Optional[CrawlConfig] = None,
        sources: Optional[Iterable[SourceDescriptor]] = None,
        send: Optional[SendFn] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "HarvestService":
        """Build a service with fresh, empty state."""
        config = config or CrawlConfig()
        queue = RequestQueue(
            concurrency=config.max_concurrent_requests,
            interval_s=config.domain_interval_s,
            timeout_s=config.request_timeout_s,
            send=send,
            sleep=sleep,
        )
        return cls(
            registry=SourceRegistry(sources),
            queue=queue,
            parsers=ParserPool(config.parser_pool, config.parser_workers),
            cache=TieredCache(config, clock=clock),
            ledger=IncrementalLedger(config.ledger_ttl_s, clock=clock),
            config=config,
            header_cache=HeaderCache(config.query_ttl_s, clock=clock),
        )

    async def __aenter__(self) -> "HarvestService":
        await self.queue.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        await self.queue.close()
        self.parsers.shutdown(wait=False)

    # ----------------------------- Queries -----------------------------

    def list_sources(self) -> List[Dict[str, str]]:
        return self.registry.describe()

    async def probe_scrapeability(self, site: str) -> ProbeResult:
        return await self.prober.probe(site)

    async def scrape(
        self,
        source: str = ALL_SOURCES,
        limit: int = 1000,
        query: Optional[str] = None,
        location: Optional[str] = None,
        remote: Optional[bool] = None,
    ) -> ScrapeResult:
        """
        Scrape (or serve from cache) and filter jobs.

        Filtered results are cached per (source, query, location, remote), so
        a repeated query within the query ttl does no network work at all.
        """
        entry = self.cache.get(SCOPE_QUERY, query_cache_key(source, query, location, remote))
        if self.cache.is_valid(entry):
            logger.info("Returning cached query results for %s", source)
            return ScrapeResult(
                jobs=entry.payload[:limit],
                total_jobs=len(entry.payload),
                from_cache=True,
                time_taken=0.0,
            )

        result = await self.orchestrator.scrape_jobs(source, limit)
        filtered = filter_jobs(result.jobs, query, location, remote)
        self.cache.store(entry, filtered)

        return ScrapeResult(
            jobs=filtered,
            total_jobs=len(filtered),
            from_cache=result.from_cache,
            time_taken=result.time_taken,
        )

    async def job_stats(self) -> Dict[str, Any]:
        """Aggregate counts over the cached (or a freshly scraped) job list."""
        entry = self.cache.get(SCOPE_QUERY, STATS_CACHE_KEY)
        if self.cache.is_valid(entry):
            return {"stats": entry.payload, "fromCache": True}

        all_entry = self.cache.get(SCOPE_ALL)
        if self.cache.is_valid(all_entry):
            jobs = all_entry.payload
        else:
            jobs = (await self.orchestrator.scrape_jobs(ALL_SOURCES, STATS_SCRAPE_LIMIT)).jobs

        stats = compute_job_stats(jobs)
        self.cache.store(entry, stats)
        return {"stats": stats, "fromCache": False}

    # ----------------------------- Admin -----------------------------

    def clear_cache(self) -> Dict[str, Any]:
        """Clear cached jobs, probes and queries. The ledger and header sets are kept."""
        self.cache.clear()
        logger.info("Cache cleared")
        return {"success": True, "message": "Cache cleared successfully"}

    async def refresh(self) -> None:
        """Warm the global cache when it has expired."""
        if self.cache.is_valid(self.cache.get(SCOPE_ALL)):
            return
        result = await self.orchestrator.scrape_jobs(ALL_SOURCES, STATS_SCRAPE_LIMIT)
        logger.info("Refreshed global cache with %d jobs", result.total_jobs)

    def performance_metrics(self) -> Dict[str, Any]:
        return {
            "cacheSize": self.cache.stats(),
            "queueState": self.queue.stats(),
            "workerPoolStats": self.parsers.stats(),
            "ledgerSources": len(self.ledger),
            "headerSets": len(self.header_cache),
            "memory": memory_usage(),
        }
