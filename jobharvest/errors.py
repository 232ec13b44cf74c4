"""
Exception types raised by the crawl engine.

Transient fetch and parse failures are not exceptions at this level: they
come back as a failed FetchResult or an empty job list so one bad URL never
aborts a crawl.
"""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for crawl engine errors."""


class ConfigurationError(HarvestError):
    """A technique was asked to run on a source missing a required field."""


class ScrapeTimeoutError(HarvestError):
    """The overall scrape exceeded its wall-clock budget."""

    def __init__(self, timeout_s: float):
        super().__init__(f"Scrape timed out after {timeout_s:g}s")
        self.timeout_s = timeout_s
