"""Tests for the tiered cache and the incremental ledger."""

import pytest

from jobharvest.cache import (
    SCOPE_ALL,
    SCOPE_QUERY,
    SCOPE_SOURCE,
    HeaderCache,
    IncrementalLedger,
    TieredCache,
)
from jobharvest.models import CrawlConfig


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TieredCache(CrawlConfig(), clock=clock)


class TestTieredCache:
    def test_read_through_creates_empty_entry(self, cache):
        entry = cache.get(SCOPE_SOURCE, "LinkedIn")

        assert entry.payload is None
        assert entry.ttl == 15 * 60
        assert not cache.is_valid(entry)
        assert cache.get(SCOPE_SOURCE, "LinkedIn") is entry

    def test_scope_default_ttls(self, cache):
        assert cache.get(SCOPE_ALL).ttl == 30 * 60
        assert cache.get(SCOPE_QUERY, "q").ttl == 10 * 60

    def test_entry_expires_lazily(self, cache, clock):
        entry = cache.get(SCOPE_QUERY, "query-all-python--")
        cache.store(entry, ["job"])
        assert cache.is_valid(entry)

        clock.advance(10 * 60 - 1)
        assert cache.is_valid(entry)

        clock.advance(1)
        assert not cache.is_valid(entry)
        # Expired entries are not swept
        assert entry.payload == ["job"]

    def test_ttl_override(self, cache, clock):
        entry = cache.get(SCOPE_QUERY, "scrapeability-board")
        cache.store(entry, "negative", ttl=300)

        clock.advance(301)
        assert not cache.is_valid(entry)

    def test_empty_list_is_a_valid_payload(self, cache):
        entry = cache.get(SCOPE_SOURCE, "Empty")
        cache.store(entry, [])
        assert cache.is_valid(entry)

    def test_clear_drops_every_scope(self, cache):
        cache.store(cache.get(SCOPE_ALL), ["a", "b"])
        cache.store(cache.get(SCOPE_SOURCE, "Board"), ["a"])
        cache.store(cache.get(SCOPE_QUERY, "q"), ["a"])
        assert cache.stats() == {"all": 2, "sources": 1, "queries": 1}

        cache.clear()

        assert not cache.is_valid(cache.get(SCOPE_ALL))
        assert not cache.is_valid(cache.get(SCOPE_SOURCE, "Board"))
        assert cache.stats()["all"] == 0

    def test_unknown_scope(self, cache):
        with pytest.raises(KeyError):
            cache.get("session", "x")


class TestIncrementalLedger:
    def test_store_and_get(self, clock):
        ledger = IncrementalLedger(ttl_s=60, clock=clock)
        ledger.store("Board", ["board-1", "board-2"])

        assert ledger.get("Board") == {"board-1", "board-2"}
        assert ledger.get("Other") == set()
        assert len(ledger) == 1

    def test_expired_ledger_reads_empty(self, clock):
        ledger = IncrementalLedger(ttl_s=60, clock=clock)
        ledger.store("Board", ["board-1"])

        clock.advance(60)
        assert ledger.get("Board") == set()

    def test_latest_store_replaces(self, clock):
        ledger = IncrementalLedger(clock=clock)
        ledger.store("Board", ["a"])
        ledger.store("Board", ["b"])

        assert ledger.get("Board") == {"b"}


class TestHeaderCache:
    def test_store_and_get(self, clock):
        headers = HeaderCache(ttl_s=60, clock=clock)
        headers.store("board.example", {"User-Agent": "Firefox"})

        assert headers.get("board.example") == {"User-Agent": "Firefox"}
        assert headers.get("other.example") is None
        assert len(headers) == 1

    def test_expired_set_reads_none(self, clock):
        headers = HeaderCache(ttl_s=60, clock=clock)
        headers.store("board.example", {"User-Agent": "Firefox"})

        clock.advance(60)
        assert headers.get("board.example") is None

    def test_returns_a_copy(self, clock):
        headers = HeaderCache(clock=clock)
        headers.store("board.example", {"User-Agent": "Firefox"})

        headers.get("board.example")["User-Agent"] = "changed"
        assert headers.get("board.example") == {"User-Agent": "Firefox"}
