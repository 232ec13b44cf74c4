"""
RSS technique: reads the source's feed instead of its HTML pages.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List

from jobharvest.errors import ConfigurationError
from jobharvest.fetchers.headers import RSS_HEADERS
from jobharvest.models import Job, SourceDescriptor, TechniqueName
from jobharvest.techniques.base import Technique

logger = logging.getLogger(__name__)


class RssTechnique(Technique):
    name = TechniqueName.RSS
    parser_format = "rss"
    paginates = False

    def applies_to(self, source: SourceDescriptor) -> bool:
        if not source.rss_url:
            raise ConfigurationError(f"No RSS URL for {source.name}")
        return True

    def primary_url(self, source: SourceDescriptor) -> str:
        return source.rss_url

    def build_url(self, url: str, source: SourceDescriptor) -> str:
        return url

    async def fetch_and_parse(
        self,
        url: str,
        source: SourceDescriptor,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        result = await self.queue.enqueue(url, RSS_HEADERS)
        if not result.ok:
            logger.warning("RSS fetch failed for %s (%s): %s", source.name, url, result.error)
            return []
        return await self.parsers.parse(self.parser_format, result.text, source, url, seen_ids)
