"""
Scrape techniques.

Each technique is a different way of retrieving a source's listings:
- rss: the source's RSS feed
- custom-headers: HTML pages fetched with rotating browser-like headers
- simple-fetch: HTML pages fetched with a plain GET
"""

from typing import Dict, Optional, Type

from jobharvest.cache import HeaderCache, IncrementalLedger, TieredCache
from jobharvest.models import CrawlConfig, TechniqueName
from jobharvest.techniques.base import Technique
from jobharvest.techniques.custom_headers import CustomHeadersTechnique
from jobharvest.techniques.rss import RssTechnique
from jobharvest.techniques.simple_fetch import SimpleFetchTechnique

TECHNIQUES: Dict[TechniqueName, Type[Technique]] = {
    TechniqueName.RSS: RssTechnique,
    TechniqueName.CUSTOM_HEADERS: CustomHeadersTechnique,
    TechniqueName.SIMPLE_FETCH: SimpleFetchTechnique,
}


def build_techniques(
    queue,
    parsers,
    cache: TieredCache,
    ledger: IncrementalLedger,
    config: Optional[CrawlConfig] = None,
    header_cache: Optional[HeaderCache] = None,
) -> Dict[TechniqueName, Technique]:
    """Instantiate every technique over the shared queue, parser pool and caches."""
    techniques: Dict[TechniqueName, Technique] = {}
    for name, cls in TECHNIQUES.items():
        if cls is CustomHeadersTechnique:
            techniques[name] = cls(queue, parsers, cache, ledger, config, header_cache=header_cache)
        else:
            techniques[name] = cls(queue, parsers, cache, ledger, config)
    return techniques


__all__ = [
    "Technique",
    "RssTechnique",
    "CustomHeadersTechnique",
    "SimpleFetchTechnique",
    "TECHNIQUES",
    "build_techniques",
]
