"""
Fetcher layer for JobHarvest.

Provides the shared rate-limited request queue:
- Global concurrency cap
- Per-domain minimum spacing between request starts
- Failures returned as FetchResult instead of raised
"""

from jobharvest.fetchers.queue import FetchResult, RequestQueue, domain_of
from jobharvest.fetchers.headers import BROWSER_HEADER_SETS, RSS_HEADERS

__all__ = ["RequestQueue", "FetchResult", "domain_of", "BROWSER_HEADER_SETS", "RSS_HEADERS"]
