"""Tests for the rate-limited request queue."""

import asyncio

import pytest

from jobharvest.fetchers.queue import FetchResult, RequestQueue, domain_of


class FrozenClock:
    """Clock that never advances; records the waits the queue asks for."""

    def __init__(self):
        self.sleeps = []

    def __call__(self) -> float:
        return 100.0

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)


async def ok_send(url, headers):
    return FetchResult(url=url, status=200, text="ok")


class TestDomainSpacing:
    async def test_same_domain_requests_are_spaced(self):
        """Each same-domain request starts at least one interval after the previous."""
        clock = FrozenClock()
        queue = RequestQueue(interval_s=0.5, send=ok_send, clock=clock, sleep=clock.sleep)

        results = await asyncio.gather(*(
            queue.enqueue(f"https://jobs.example/page/{i}") for i in range(3)
        ))

        assert all(r.ok for r in results)
        assert clock.sleeps == [0.5, 1.0]

    async def test_different_domains_do_not_wait(self):
        clock = FrozenClock()
        queue = RequestQueue(interval_s=0.5, send=ok_send, clock=clock, sleep=clock.sleep)

        await asyncio.gather(*(
            queue.enqueue(f"https://site{i}.example/") for i in range(3)
        ))

        assert clock.sleeps == []
        assert queue.stats()["domains"] == 3


class TestConcurrency:
    async def test_in_flight_requests_are_capped(self):
        in_flight = 0
        peak = 0
        release = asyncio.Event()

        async def blocking_send(url, headers):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await release.wait()
            in_flight -= 1
            return FetchResult(url=url, status=200, text="ok")

        queue = RequestQueue(concurrency=2, send=blocking_send)
        tasks = [
            asyncio.create_task(queue.enqueue(f"https://d{i}.example/"))
            for i in range(5)
        ]
        await asyncio.sleep(0.01)

        stats = queue.stats()
        assert stats["running"] == 2
        assert stats["queueLength"] == 3

        release.set()
        results = await asyncio.gather(*tasks)

        assert peak == 2
        assert [r.url for r in results] == [f"https://d{i}.example/" for i in range(5)]
        assert queue.stats()["running"] == 0


class TestFailures:
    async def test_transport_exception_becomes_failed_result(self):
        async def broken_send(url, headers):
            raise ConnectionError("connection reset")

        queue = RequestQueue(send=broken_send)
        result = await queue.enqueue("https://down.example/")

        assert not result.ok
        assert result.error == "connection reset"
        assert queue.stats()["running"] == 0

    async def test_non_2xx_is_not_ok(self):
        async def forbidden(url, headers):
            return FetchResult(url=url, status=403, error="HTTP 403")

        queue = RequestQueue(send=forbidden)
        result = await queue.enqueue("https://blocked.example/")

        assert not result.ok
        assert result.status == 403

    async def test_headers_are_passed_through(self):
        seen = {}

        async def capture(url, headers):
            seen.update(headers)
            return FetchResult(url=url, status=200)

        queue = RequestQueue(send=capture)
        await queue.enqueue("https://jobs.example/", {"User-Agent": "test-agent"})

        assert seen == {"User-Agent": "test-agent"}


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.linkedin.com/jobs/search?start=25", "www.linkedin.com"),
        ("http://remoteok.com:8080/remote-jobs.rss", "remoteok.com"),
        ("not a url", "unknown"),
    ],
)
def test_domain_of(url, expected):
    assert domain_of(url) == expected
