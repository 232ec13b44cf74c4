"""
Header-mimicking technique.

Rotates through browser-like header sets until one yields listings, then
remembers the winning set per domain so later requests go straight to it.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Dict, List, Optional

from jobharvest.cache import HeaderCache
from jobharvest.fetchers.headers import BROWSER_HEADER_SETS
from jobharvest.fetchers.queue import domain_of
from jobharvest.models import Job, SourceDescriptor, TechniqueName
from jobharvest.techniques.base import Technique

logger = logging.getLogger(__name__)


class CustomHeadersTechnique(Technique):
    name = TechniqueName.CUSTOM_HEADERS

    def __init__(
        self,
        *args,
        header_sets: Optional[List[Dict[str, str]]] = None,
        header_cache: Optional[HeaderCache] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.header_sets = header_sets if header_sets is not None else BROWSER_HEADER_SETS
        if header_cache is None:
            header_cache = HeaderCache(self.config.query_ttl_s, clock=self.cache.clock)
        self.header_cache = header_cache

    async def fetch_and_parse(
        self,
        url: str,
        source: SourceDescriptor,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        target = self.build_url(url, source)
        domain = domain_of(url)

        cached = self.header_cache.get(domain)
        if cached is not None:
            result = await self.queue.enqueue(target, cached)
            if result.ok:
                return await self.parsers.parse(self.parser_format, result.text, source, url, seen_ids)
            logger.info("Cached headers for %s stopped working: %s", domain, result.error)

        for headers in self.header_sets:
            result = await self.queue.enqueue(target, dict(headers))
            if not result.ok:
                logger.debug("Header set rejected by %s: %s", domain, result.error)
                continue

            jobs = await self.parsers.parse(self.parser_format, result.text, source, url, seen_ids)
            if jobs:
                self.header_cache.store(domain, headers)
                return jobs

        return []
