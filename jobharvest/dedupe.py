"""
Deduplication of merged job lists.

Jobs are keyed on lower-cased title, company and location; the first
occurrence wins. Two genuinely different postings that share all three
fields are conflated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Set

from jobharvest.models import Job


@dataclass
class DedupeResult:
    """Result of deduplication."""
    unique_jobs: List[Job]
    duplicates_removed: int


def dedupe_key(job: Job) -> str:
    return f"{job.title}|{job.company}|{job.location}".lower()


def dedupe_jobs(jobs: Iterable[Job]) -> DedupeResult:
    seen: Set[str] = set()
    unique: List[Job] = []
    removed = 0

    for job in jobs:
        key = dedupe_key(job)
        if key in seen:
            removed += 1
            continue
        seen.add(key)
        unique.append(job)

    return DedupeResult(unique_jobs=unique, duplicates_removed=removed)
