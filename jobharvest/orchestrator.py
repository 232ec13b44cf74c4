"""
Scrape orchestrator for JobHarvest.

Ties together the source registry, prober, techniques, deduplication and
the tiered cache into a single scrape_jobs() call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from jobharvest.cache import SCOPE_ALL, SCOPE_SOURCE, TieredCache
from jobharvest.dedupe import dedupe_jobs
from jobharvest.errors import ScrapeTimeoutError
from jobharvest.models import CrawlConfig, Job, ScrapeResult, SourceDescriptor, TechniqueName
from jobharvest.prober import Prober
from jobharvest.sources import SourceRegistry, priority_bands
from jobharvest.techniques import Technique

logger = logging.getLogger(__name__)

ALL_SOURCES = "all"


class ScrapeOrchestrator:
    """
    Runs scrapes across sources in priority bands.

    Sources in one band are scraped concurrently; the next band only starts
    if the limit has not been reached. Each source runs as its own task, so
    a scrape that times out leaves in-flight sources running to completion
    and filling their per-source cache.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        prober: Prober,
        techniques: Dict[TechniqueName, Technique],
        cache: TieredCache,
        config: Optional[CrawlConfig] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.registry = registry
        self.prober = prober
        self.techniques = techniques
        self.cache = cache
        self.config = config or CrawlConfig()
        self.timer = timer
        self._background: Set[asyncio.Task] = set()

    async def scrape_jobs(self, source_filter: str = ALL_SOURCES, limit: int = 1000) -> ScrapeResult:
        """
        Scrape jobs from all sources or one named source.

        Raises ScrapeTimeoutError if the scrape exceeds the configured timeout.
        """
        timeout = self.config.scrape_timeout_s
        try:
            return await asyncio.wait_for(self._scrape(source_filter, limit), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Scrape of %s timed out after %.0fs", source_filter, timeout)
            raise ScrapeTimeoutError(timeout) from None

    async def _scrape(self, source_filter: str, limit: int) -> ScrapeResult:
        start = self.timer()
        full_scrape = source_filter.lower() == ALL_SOURCES

        cached = self._cached(source_filter, full_scrape)
        if cached is not None:
            logger.info("Returning %s jobs from cache", source_filter)
            return ScrapeResult(
                jobs=list(cached[:limit]),
                total_jobs=len(cached),
                from_cache=True,
                time_taken=0.0,
            )

        sources = self.registry.resolve(source_filter)
        if not sources:
            logger.info("No sources match %r", source_filter)
            return ScrapeResult()

        all_jobs: List[Job] = []
        for band in priority_bands(sources):
            needed = limit - len(all_jobs)
            if needed <= 0:
                break

            logger.info(
                "Processing band of %d sources with priority %d",
                len(band), band[0].priority,
            )
            tasks = [self._spawn(source, needed) for source in band]
            # Shielded so a timeout cancels the scrape but not the sources
            results = await asyncio.shield(asyncio.gather(*tasks))

            band_jobs = [job for jobs in results for job in jobs]
            all_jobs.extend(band_jobs[:needed])

        deduped = dedupe_jobs(all_jobs)
        unique = deduped.unique_jobs

        if full_scrape:
            self.cache.store(self.cache.get(SCOPE_ALL), unique)

        elapsed = self.timer() - start
        logger.info(
            "Job scrape completed in %.2fs, found %d jobs (%d duplicates removed)",
            elapsed, len(unique), deduped.duplicates_removed,
        )
        return ScrapeResult(
            jobs=unique[:limit],
            total_jobs=len(unique),
            from_cache=False,
            time_taken=elapsed,
        )

    def _cached(self, source_filter: str, full_scrape: bool) -> Optional[List[Job]]:
        if full_scrape:
            entry = self.cache.get(SCOPE_ALL)
        else:
            source = self.registry.get(source_filter)
            if source is None:
                return None
            entry = self.cache.get(SCOPE_SOURCE, source.name)
        return entry.payload if self.cache.is_valid(entry) else None

    def _spawn(self, source: SourceDescriptor, quota: int) -> asyncio.Task:
        task = asyncio.create_task(self._scrape_source(source, quota))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _scrape_source(self, source: SourceDescriptor, quota: int) -> List[Job]:
        try:
            probe = await self.prober.probe(source.name)
            if not probe.scrapable:
                logger.info("Skipping %s: not scrapable (%s)", source.name, probe.error)
                return []

            technique = self.techniques.get(probe.technique)
            if technique is None:
                return []
            jobs = await technique.run(source, quota)

            self.cache.store(self.cache.get(SCOPE_SOURCE, source.name), jobs)
            logger.info("%s: %d jobs via %s", source.name, len(jobs), probe.technique.value)
            return jobs
        except Exception as e:
            logger.error("Error scraping from %s: %s", source.name, e)
            return []

    async def drain(self) -> None:
        """Wait for source tasks left running by a timed-out scrape."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
