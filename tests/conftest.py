"""Shared fixtures: a fake transport, sample documents and test sources."""

import asyncio
from types import SimpleNamespace
from typing import Callable, Dict, List, Tuple, Union

import pytest

from jobharvest.cache import HeaderCache, IncrementalLedger, TieredCache
from jobharvest.extract.pool import ParserPool
from jobharvest.fetchers.queue import FetchResult, RequestQueue
from jobharvest.models import (
    CrawlConfig,
    Pagination,
    SelectorSet,
    SourceDescriptor,
    SourceType,
)
from jobharvest.service import HarvestService
from jobharvest.techniques import build_techniques

Response = Union[str, FetchResult, Callable[[str, Dict[str, str]], Union[str, FetchResult]]]


class FakeSend:
    """Stands in for the HTTP layer: url -> body, FetchResult or callable."""

    def __init__(self, routes: Dict[str, Response] = None):
        self.routes: Dict[str, Response] = dict(routes or {})
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    async def __call__(self, url: str, headers: Dict[str, str]) -> FetchResult:
        self.calls.append((url, dict(headers)))
        await asyncio.sleep(0)
        response = self.routes.get(url)
        if callable(response):
            response = response(url, headers)
        if response is None:
            return FetchResult(url=url, status=404, error="HTTP 404")
        if isinstance(response, FetchResult):
            return response
        return FetchResult(url=url, status=200, text=response)

    @property
    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]


async def no_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


# ----------------------------- Documents -----------------------------

def listing_page(titles, company="Acme", location="Remote") -> str:
    cards = "".join(
        f'<div class="job"><h2 class="title">{title}</h2>'
        f'<span class="company">{company}</span>'
        f'<span class="location">{location}</span>'
        f'<a href="/jobs/{i}">View</a></div>'
        for i, title in enumerate(titles)
    )
    return f"<html><body>{cards}</body></html>"


def jobs_page(prefix: str, n: int, **kwargs) -> str:
    return listing_page([f"{prefix} {i}" for i in range(n)], **kwargs)


def rss_feed(items) -> str:
    """items: iterable of (title, link, description_html)."""
    body = "".join(
        "<item>"
        f"<title>{title}</title>"
        f"<link>{link}</link>"
        f"<description><![CDATA[{description}]]></description>"
        "<pubDate>Mon, 01 Jan 2024 10:00:00 +0000</pubDate>"
        "</item>"
        for title, link, description in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>Jobs</title>{body}</channel></rss>'
    )


def feed_of(prefix: str, n: int) -> str:
    return rss_feed(
        (f"{prefix} {i}", f"https://feed.example/jobs/{i}", f"<p>{prefix} role {i}</p>")
        for i in range(n)
    )


# ----------------------------- Sources -----------------------------

CARD_SELECTOR = SelectorSet(
    container=".job",
    title=".title",
    company=".company",
    location=".location",
    link="a",
)

BOARD = SourceDescriptor(
    name="Board",
    url="https://board.example/jobs",
    type=SourceType.HTML,
    selector=CARD_SELECTOR,
    priority=1,
)

PAGED_BOARD = SourceDescriptor(
    name="PagedBoard",
    url="https://paged.example/jobs",
    type=SourceType.HTML,
    selector=CARD_SELECTOR,
    pagination=Pagination(enabled=True, max_pages=3, param="page", early_termination=True),
    priority=1,
)

FEED = SourceDescriptor(
    name="Feed",
    url="https://feed.example",
    type=SourceType.RSS,
    rss_url="https://feed.example/rss",
    priority=1,
)


# ----------------------------- Fixtures -----------------------------

@pytest.fixture
def config() -> CrawlConfig:
    return CrawlConfig(parser_pool="thread", parser_workers=2)


@pytest.fixture
def fake_send() -> FakeSend:
    return FakeSend()


@pytest.fixture
def parsers():
    pool = ParserPool("thread", max_workers=2)
    yield pool
    pool.shutdown()


@pytest.fixture
def engine(config, fake_send, parsers):
    """Queue, cache, ledger and techniques wired over the fake transport."""
    queue = RequestQueue(send=fake_send, sleep=no_sleep)
    cache = TieredCache(config)
    ledger = IncrementalLedger(config.ledger_ttl_s)
    header_cache = HeaderCache(config.query_ttl_s)
    techniques = build_techniques(queue, parsers, cache, ledger, config, header_cache=header_cache)

    return SimpleNamespace(
        send=fake_send,
        queue=queue,
        cache=cache,
        ledger=ledger,
        header_cache=header_cache,
        techniques=techniques,
        config=config,
    )


@pytest.fixture
async def make_service(config):
    """Factory for HarvestService instances over a fake transport."""
    created: List[HarvestService] = []

    def factory(routes=None, sources=None, **overrides) -> HarvestService:
        cfg = CrawlConfig(**{**config.to_dict(), **overrides})
        send = routes if isinstance(routes, FakeSend) else FakeSend(routes)
        service = HarvestService.create(cfg, sources=sources, send=send, sleep=no_sleep)
        service.send = send
        created.append(service)
        return service

    yield factory

    for service in created:
        await service.close()
