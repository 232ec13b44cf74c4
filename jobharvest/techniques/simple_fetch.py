"""
Plain GET technique: no browser headers, no retries.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List

from jobharvest.fetchers.headers import PLAIN_HEADERS
from jobharvest.models import Job, SourceDescriptor, TechniqueName
from jobharvest.techniques.base import Technique

logger = logging.getLogger(__name__)


class SimpleFetchTechnique(Technique):
    name = TechniqueName.SIMPLE_FETCH

    async def fetch_and_parse(
        self,
        url: str,
        source: SourceDescriptor,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        result = await self.queue.enqueue(self.build_url(url, source), PLAIN_HEADERS)
        if not result.ok:
            logger.warning("Simple fetch failed for %s (%s): %s", source.name, url, result.error)
            return []
        return await self.parsers.parse(self.parser_format, result.text, source, url, seen_ids)
