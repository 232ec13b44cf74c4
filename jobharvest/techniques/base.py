"""
Base class for scrape techniques.

Every technique has the same shape: fetch the primary URL, fan out to the
source's alternative URLs in small concurrent batches, optionally walk
pagination, and record the emitted ids in the incremental ledger. Subclasses
only decide how a single URL is fetched and which parser reads it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AbstractSet, List, Mapping, Optional, TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from jobharvest.cache import IncrementalLedger, TieredCache
from jobharvest.models import CrawlConfig, Job, SourceDescriptor, TechniqueName

if TYPE_CHECKING:
    from jobharvest.extract.pool import ParserPool
    from jobharvest.fetchers.queue import RequestQueue

logger = logging.getLogger(__name__)


def with_params(url: str, params: Mapping[str, str]) -> str:
    """Return url with params set in its query string (existing keys replaced)."""
    if not params:
        return url
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({k: str(v) for k, v in params.items()})
    return urlunsplit(parts._replace(query=urlencode(query)))


class Technique(ABC):
    """
    A way of retrieving a source's listings.

    run() never raises for a single failed URL or page; those yield no jobs
    and the remaining URLs are still tried.
    """

    name: TechniqueName
    parser_format: str = "html"
    paginates: bool = True

    def __init__(
        self,
        queue: "RequestQueue",
        parsers: "ParserPool",
        cache: TieredCache,
        ledger: IncrementalLedger,
        config: Optional[CrawlConfig] = None,
    ):
        self.queue = queue
        self.parsers = parsers
        self.cache = cache
        self.ledger = ledger
        self.config = config or CrawlConfig()

    def applies_to(self, source: SourceDescriptor) -> bool:
        """Whether this technique can read the source at all."""
        return source.selector is not None

    def primary_url(self, source: SourceDescriptor) -> str:
        return source.url

    def build_url(self, url: str, source: SourceDescriptor) -> str:
        """The URL actually requested: fixed query params merged in."""
        return with_params(url, dict(source.query_params))

    @abstractmethod
    async def fetch_and_parse(
        self,
        url: str,
        source: SourceDescriptor,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        """Fetch one URL and parse it into jobs."""
        raise NotImplementedError

    async def run(
        self,
        source: SourceDescriptor,
        limit: int,
        incremental: bool = True,
    ) -> List[Job]:
        """
        Collect up to `limit` jobs from `source`.

        With incremental=False the ledger is neither consulted nor updated,
        which is how the prober takes cheap samples without hiding records
        from the real scrape.
        """
        if not self.applies_to(source):
            return []

        seen_ids: AbstractSet[str] = self.ledger.get(source.name) if incremental else frozenset()
        jobs = (await self._collect(source, limit, seen_ids))[:limit]

        if incremental:
            self.ledger.store(source.name, [job.id for job in jobs])
        return jobs

    async def _collect(
        self,
        source: SourceDescriptor,
        limit: int,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        jobs = list(await self._fetch_safely(self.primary_url(source), source, seen_ids))
        if len(jobs) >= limit:
            return jobs

        # Alternative URLs: concurrent within a batch, sequential across batches
        alternatives = list(source.alternative_urls)
        batch_size = max(1, self.config.alternative_batch_size)
        for start in range(0, len(alternatives), batch_size):
            batch = alternatives[start:start + batch_size]
            results = await asyncio.gather(
                *(self._fetch_safely(url, source, seen_ids) for url in batch)
            )
            for batch_jobs in results:
                jobs.extend(batch_jobs)
            if len(jobs) >= limit:
                return jobs

        if self.paginates and source.paginates:
            await self._paginate(source, jobs, limit, seen_ids)

        return jobs

    async def _paginate(
        self,
        source: SourceDescriptor,
        jobs: List[Job],
        limit: int,
        seen_ids: AbstractSet[str],
    ) -> None:
        pagination = source.pagination
        threshold = self.config.early_termination_threshold

        for page in range(2, pagination.max_pages + 1):
            url = with_params(source.url, {pagination.param: str(pagination.page_value(page))})
            page_jobs = await self._fetch_safely(url, source, seen_ids)
            if not page_jobs:
                break

            jobs.extend(page_jobs)
            if len(jobs) >= limit:
                break

            if pagination.early_termination and len(page_jobs) < threshold:
                logger.info(
                    "Early termination for %s pagination: only %d new jobs on page %d",
                    source.name, len(page_jobs), page,
                )
                break

    async def _fetch_safely(
        self,
        url: str,
        source: SourceDescriptor,
        seen_ids: AbstractSet[str],
    ) -> List[Job]:
        try:
            return await self.fetch_and_parse(url, source, seen_ids)
        except Exception as e:
            logger.warning("%s: error fetching %s for %s: %s", self.name.value, url, source.name, e)
            return []
