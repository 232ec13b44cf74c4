"""Tests for the scrapeability prober."""

import pytest

from jobharvest.cache import SCOPE_QUERY
from jobharvest.fetchers.queue import FetchResult
from jobharvest.models import TechniqueName
from jobharvest.prober import ALL_TECHNIQUES_FAILED, SITE_NOT_FOUND, Prober, probe_cache_key
from jobharvest.sources import SourceRegistry

from tests.conftest import BOARD, FEED, feed_of, jobs_page


@pytest.fixture
def prober(engine):
    return Prober(SourceRegistry([BOARD, FEED]), engine.techniques, engine.cache, engine.config)


class TestProber:
    async def test_unknown_site(self, prober, engine):
        result = await prober.probe("Monster")

        assert result.scrapable is False
        assert result.technique is None
        assert result.job_count == 0
        assert result.error == SITE_NOT_FOUND
        assert engine.send.calls == []
        assert engine.cache.stats()["queries"] == 0

    async def test_unknown_sites_add_no_cache_entries(self, prober, engine):
        for site in ("Monster", "Indeedx", "nope"):
            await prober.probe(site)

        assert engine.cache.queries == {}

    async def test_rss_tried_first_for_feeds(self, prober, engine):
        engine.send.routes[FEED.rss_url] = feed_of("Feed job", 12)

        result = await prober.probe("feed")

        assert result.scrapable is True
        assert result.technique == TechniqueName.RSS
        assert result.job_count == 5

    async def test_html_source_uses_custom_headers(self, prober, engine):
        engine.send.routes[BOARD.url] = jobs_page("Job", 8)

        result = await prober.probe("Board")

        assert result.technique == TechniqueName.CUSTOM_HEADERS
        assert result.job_count == 5

    async def test_falls_through_to_simple_fetch(self, prober, engine):
        def plain_only(url, headers):
            if "User-Agent" in headers:
                return FetchResult(url=url, status=403, error="HTTP 403")
            return jobs_page("Job", 2)

        engine.send.routes[BOARD.url] = plain_only

        result = await prober.probe("Board")

        assert result.technique == TechniqueName.SIMPLE_FETCH
        assert result.job_count == 2

    async def test_positive_result_is_cached(self, prober, engine):
        engine.send.routes[BOARD.url] = jobs_page("Job", 8)

        first = await prober.probe("Board")
        calls = len(engine.send.calls)
        second = await prober.probe("board")

        assert second is first
        assert len(engine.send.calls) == calls

    async def test_negative_result_cached_briefly(self, prober, engine):
        result = await prober.probe("Board")

        assert result.scrapable is False
        assert result.error == ALL_TECHNIQUES_FAILED

        entry = engine.cache.get(SCOPE_QUERY, probe_cache_key("Board"))
        assert engine.cache.is_valid(entry)
        assert entry.ttl == engine.config.negative_ttl_s

    async def test_probe_does_not_touch_ledger(self, prober, engine):
        engine.send.routes[BOARD.url] = jobs_page("Job", 8)

        await prober.probe("Board")

        assert len(engine.ledger) == 0
