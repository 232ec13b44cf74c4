"""
Scrapeability prober.

Finds the first technique that returns listings for a source and caches the
answer, so scrapes don't have to rediscover it on every call.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from jobharvest.cache import SCOPE_QUERY, TieredCache
from jobharvest.models import CrawlConfig, ProbeResult, SourceDescriptor, SourceType, TechniqueName
from jobharvest.sources import SourceRegistry
from jobharvest.techniques import Technique

logger = logging.getLogger(__name__)

SITE_NOT_FOUND = "Site not found in sources list"
ALL_TECHNIQUES_FAILED = "All scraping techniques failed"


def probe_cache_key(source_name: str) -> str:
    return f"scrapeability-{source_name.lower()}"


class Prober:
    def __init__(
        self,
        registry: SourceRegistry,
        techniques: Dict[TechniqueName, Technique],
        cache: TieredCache,
        config: Optional[CrawlConfig] = None,
    ):
        self.registry = registry
        self.techniques = techniques
        self.cache = cache
        self.config = config or CrawlConfig()

    def candidates(self, source: SourceDescriptor) -> List[TechniqueName]:
        """Techniques to try for `source`, in order."""
        order: List[TechniqueName] = []
        if source.type == SourceType.RSS and source.rss_url:
            order.append(TechniqueName.RSS)
        order.extend([TechniqueName.CUSTOM_HEADERS, TechniqueName.SIMPLE_FETCH])
        return order

    async def probe(self, source_name: str) -> ProbeResult:
        """
        Return the cached or freshly discovered ProbeResult for a source.

        Samples are taken with the incremental ledger bypassed, so probing
        never hides records from a later scrape.
        """
        source = self.registry.get(source_name)
        if source is None:
            return ProbeResult(scrapable=False, error=SITE_NOT_FOUND)

        entry = self.cache.get(SCOPE_QUERY, probe_cache_key(source.name))
        if self.cache.is_valid(entry):
            return entry.payload

        sample = self.config.probe_sample_size
        for name in self.candidates(source):
            technique = self.techniques.get(name)
            if technique is None:
                continue
            try:
                jobs = await technique.run(source, sample, incremental=False)
            except Exception as e:
                logger.warning("Probe of %s with %s failed: %s", source.name, name.value, e)
                continue

            if jobs:
                result = ProbeResult(scrapable=True, technique=name, job_count=len(jobs))
                self.cache.store(entry, result)
                logger.info("%s is scrapable with %s (%d sample jobs)", source.name, name.value, len(jobs))
                return result

        result = ProbeResult(scrapable=False, error=ALL_TECHNIQUES_FAILED)
        self.cache.store(entry, result, ttl=self.config.negative_ttl_s)
        logger.warning("No technique works for %s", source.name)
        return result
