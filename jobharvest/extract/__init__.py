"""
Extraction utilities for JobHarvest.

Provides:
- HTML listing extraction (selector-driven and forum-thread heuristics)
- RSS feed extraction with per-source heuristics
- A worker pool that runs both parsers off the event loop
"""

from jobharvest.extract.html import parse_html, strip_html
from jobharvest.extract.rss import parse_rss
from jobharvest.extract.pool import ParserPool

__all__ = [
    "parse_html",
    "parse_rss",
    "strip_html",
    "ParserPool",
]
