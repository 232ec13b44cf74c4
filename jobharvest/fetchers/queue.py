"""
Rate-limited request queue.

All outbound HTTP goes through one RequestQueue: at most `concurrency`
requests are in flight, and two requests to the same domain never start
less than `interval_s` apart. The queue never retries; failures come back
as a FetchResult with `error` set and the calling technique decides what to
do next.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Dict, Optional, Set
from urllib.parse import urlsplit

import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status: int = 0
    text: str = ""
    content_type: str = ""
    error: str = ""
    elapsed_ms: float = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300 and not self.error


SendFn = Callable[[str, Dict[str, str]], Awaitable[FetchResult]]


def domain_of(url: str) -> str:
    try:
        return urlsplit(url).hostname or "unknown"
    except ValueError:
        return "unknown"


@dataclass
class _PendingRequest:
    url: str
    headers: Dict[str, str]
    domain: str
    future: "asyncio.Future[FetchResult]" = field(repr=False)


class RequestQueue:
    """
    FIFO request queue with global concurrency and per-domain spacing.

    The pump admits queued requests while slots are free. Each admitted
    request reserves its start time for its domain before sleeping, so
    concurrent requests to the same domain stay spaced even when admitted in
    the same pump pass.
    """

    DEFAULT_HEADERS = {
        "User-Agent": "Mozilla/5.0 (compatible; JobHarvest/1.0)",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(
        self,
        concurrency: int = 10,
        interval_s: float = 0.5,
        timeout_s: float = 20.0,
        send: Optional[SendFn] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.concurrency = max(1, concurrency)
        self.interval_s = interval_s
        self.timeout_s = timeout_s
        self._send = send or self._http_get
        self._clock = clock
        self._sleep = sleep
        self._pending: Deque[_PendingRequest] = deque()
        self._running = 0
        self._last_request: Dict[str, float] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "RequestQueue":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def start(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.concurrency * 2,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers=self.DEFAULT_HEADERS,
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def enqueue(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        """Queue a GET for url and wait for its result."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[FetchResult] = loop.create_future()
        self._pending.append(_PendingRequest(
            url=url,
            headers=dict(headers or {}),
            domain=domain_of(url),
            future=future,
        ))
        self._pump()
        return await future

    def _pump(self) -> None:
        while self._running < self.concurrency and self._pending:
            item = self._pending.popleft()
            if item.future.done():
                continue
            self._running += 1

            now = self._clock()
            last = self._last_request.get(item.domain)
            start_at = now if last is None else max(now, last + self.interval_s)
            self._last_request[item.domain] = start_at

            task = asyncio.create_task(self._dispatch(item, start_at - now))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, item: _PendingRequest, wait_s: float) -> None:
        try:
            if wait_s > 0:
                await self._sleep(wait_s)
            try:
                result = await self._send(item.url, item.headers)
            except Exception as e:
                logger.warning("Request to %s failed: %s", item.url, e)
                result = FetchResult(url=item.url, error=str(e) or type(e).__name__)
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._last_request[item.domain] = max(
                self._last_request.get(item.domain, 0.0), self._clock()
            )
            self._running -= 1
            self._pump()

    async def _http_get(self, url: str, headers: Dict[str, str]) -> FetchResult:
        if self._session is None or self._session.closed:
            await self.start()

        start_time = time.time()
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_s)
            async with self._session.get(url, headers=headers or None, timeout=timeout, allow_redirects=True) as resp:
                content_type = resp.headers.get("Content-Type", "")
                if not 200 <= resp.status < 300:
                    return FetchResult(
                        url=url,
                        status=resp.status,
                        content_type=content_type,
                        error=f"HTTP {resp.status}",
                        elapsed_ms=(time.time() - start_time) * 1000,
                    )
                text = await resp.text(errors="replace")
                return FetchResult(
                    url=url,
                    status=resp.status,
                    text=text,
                    content_type=content_type,
                    elapsed_ms=(time.time() - start_time) * 1000,
                )
        except asyncio.TimeoutError:
            return FetchResult(url=url, error="Timeout", elapsed_ms=(time.time() - start_time) * 1000)
        except aiohttp.ClientError as e:
            return FetchResult(url=url, error=str(e) or type(e).__name__, elapsed_ms=(time.time() - start_time) * 1000)

    def stats(self) -> Dict[str, int]:
        return {
            "queueLength": len(self._pending),
            "running": self._running,
            "domains": len(self._last_request),
        }
