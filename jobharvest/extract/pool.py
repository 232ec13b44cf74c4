"""
Worker pool for document parsing.

Parsing large pages with BeautifulSoup is CPU-bound, so it runs on a
concurrent.futures executor instead of the event loop. The parsers are pure
module-level functions, which keeps them safe to ship to worker processes.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import AbstractSet, Dict, List, Optional

from jobharvest.extract.html import parse_html
from jobharvest.extract.rss import parse_rss
from jobharvest.models import Job, SourceDescriptor

logger = logging.getLogger(__name__)

PARSERS = {
    "html": parse_html,
    "rss": parse_rss,
}


class ParserPool:
    """
    Runs parse_html / parse_rss on a process or thread pool.

    A failing parse is logged and yields no jobs for that document.
    """

    def __init__(self, kind: str = "process", max_workers: int = 4):
        if kind not in ("process", "thread"):
            raise ValueError(f"Unknown parser pool kind: {kind}")
        self.kind = kind
        self.max_workers = max(1, max_workers)
        self._executor: Optional[Executor] = None
        self._pending = 0
        self._completed = 0
        self._failed = 0

    def _get_executor(self) -> Executor:
        if self._executor is None:
            if self.kind == "process":
                self._executor = ProcessPoolExecutor(max_workers=self.max_workers)
            else:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="jobharvest-parse",
                )
        return self._executor

    async def parse(
        self,
        fmt: str,
        content: str,
        source: SourceDescriptor,
        base_url: str,
        seen_ids: AbstractSet[str] = frozenset(),
    ) -> List[Job]:
        """Parse one document off the event loop."""
        parser = PARSERS[fmt]
        loop = asyncio.get_running_loop()
        self._pending += 1
        try:
            jobs = await loop.run_in_executor(
                self._get_executor(),
                parser,
                content,
                source,
                base_url,
                frozenset(seen_ids),
            )
        except Exception as e:
            self._failed += 1
            logger.warning("Parse failed for %s (%s): %s", source.name, base_url, e)
            return []
        finally:
            self._pending -= 1

        self._completed += 1
        return jobs

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def stats(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "maxWorkers": self.max_workers,
            "pending": self._pending,
            "completed": self._completed,
            "failed": self._failed,
        }
