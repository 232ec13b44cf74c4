"""
In-memory tiered cache for crawl results.

Scopes:
- "all": one entry holding the last full-crawl result (30 min)
- "source": one entry per source name (15 min)
- "query": one entry per filter tuple or probe result (10 min)

Expiry is lazy: entries are checked at read time and never swept. The key
space is bounded by source count times filter cardinality.

IncrementalLedger and HeaderCache live outside these scopes and survive
TieredCache.clear().
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Set

from jobharvest.models import CrawlConfig


SCOPE_ALL = "all"
SCOPE_SOURCE = "source"
SCOPE_QUERY = "query"


@dataclass
class CacheEntry:
    """A payload with the time it was written and its lifetime in seconds."""
    ttl: float
    payload: Any = None
    timestamp: Optional[float] = None

    def store(self, payload: Any, now: float, ttl: Optional[float] = None) -> None:
        self.payload = payload
        self.timestamp = now
        if ttl is not None:
            self.ttl = ttl

    def reset(self) -> None:
        self.payload = None
        self.timestamp = None


class TieredCache:
    """
    Keyed expiring stores shared by the prober, techniques and orchestrator.

    get() never misses: an absent key is created empty with the scope's
    default ttl, so callers can write into the returned entry directly.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or CrawlConfig()
        self.clock = clock
        self.all = CacheEntry(ttl=self.config.all_ttl_s)
        self.sources: Dict[str, CacheEntry] = {}
        self.queries: Dict[str, CacheEntry] = {}

    def get(self, scope: str, key: str = "") -> CacheEntry:
        if scope == SCOPE_ALL:
            return self.all
        if scope == SCOPE_SOURCE:
            store, ttl = self.sources, self.config.source_ttl_s
        elif scope == SCOPE_QUERY:
            store, ttl = self.queries, self.config.query_ttl_s
        else:
            raise KeyError(f"Unknown cache scope: {scope}")

        entry = store.get(key)
        if entry is None:
            entry = CacheEntry(ttl=ttl)
            store[key] = entry
        return entry

    def is_valid(self, entry: CacheEntry) -> bool:
        return (
            entry.payload is not None
            and entry.timestamp is not None
            and self.clock() - entry.timestamp < entry.ttl
        )

    def store(self, entry: CacheEntry, payload: Any, ttl: Optional[float] = None) -> None:
        """Write payload into entry, stamped with the cache clock."""
        entry.store(payload, self.clock(), ttl)

    def clear(self) -> None:
        """Null the global entry and drop the per-source and per-query maps."""
        self.all.reset()
        self.sources = {}
        self.queries = {}

    def stats(self) -> Dict[str, int]:
        payload = self.all.payload
        return {
            "all": len(payload) if isinstance(payload, list) else 0,
            "sources": len(self.sources),
            "queries": len(self.queries),
        }


@dataclass
class _LedgerEntry:
    ids: Set[str]
    timestamp: float


class IncrementalLedger:
    """
    Per-source set of job ids emitted by the latest scrape.

    Parsers skip ids present here, so a source re-scraped within the ledger
    window only yields records it has not emitted recently. Not cleared by
    TieredCache.clear().
    """

    def __init__(
        self,
        ttl_s: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_s = ttl_s
        self.clock = clock
        self._entries: Dict[str, _LedgerEntry] = {}

    def store(self, source_name: str, ids: Iterable[str]) -> None:
        self._entries[source_name] = _LedgerEntry(ids=set(ids), timestamp=self.clock())

    def get(self, source_name: str) -> Set[str]:
        """Ids seen for the source, or an empty set once the window has passed."""
        entry = self._entries.get(source_name)
        if entry and self.clock() - entry.timestamp < self.ttl_s:
            return entry.ids
        return set()

    def __len__(self) -> int:
        return len(self._entries)


class HeaderCache:
    """
    Per-domain header set that last got listings through. Not cleared by
    TieredCache.clear().
    """

    def __init__(
        self,
        ttl_s: float = 10 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_s = ttl_s
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, domain: str) -> Optional[Dict[str, str]]:
        entry = self._entries.get(domain)
        if entry and entry.timestamp is not None and self.clock() - entry.timestamp < entry.ttl:
            return dict(entry.payload)
        return None

    def store(self, domain: str, headers: Dict[str, str]) -> None:
        entry = self._entries.setdefault(domain, CacheEntry(ttl=self.ttl_s))
        entry.store(dict(headers), self.clock())

    def __len__(self) -> int:
        return len(self._entries)
