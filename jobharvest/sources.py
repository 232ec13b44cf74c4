"""
Static registry of job-listing sources.

The built-in list is process-wide and read-only; tests and embedders can
build a SourceRegistry over their own descriptors.
"""

from __future__ import annotations

from itertools import groupby
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from jobharvest.models import (
    Pagination,
    PaginationKind,
    ParserKind,
    SelectorSet,
    SourceDescriptor,
    SourceType,
)


JOB_SOURCES: Tuple[SourceDescriptor, ...] = (
    SourceDescriptor(
        name="WeWorkRemotely",
        url="https://weworkremotely.com",
        type=SourceType.RSS,
        rss_url="https://weworkremotely.com/categories/remote-programming-jobs.rss",
        alternative_urls=(
            "https://weworkremotely.com/categories/remote-design-jobs.rss",
            "https://weworkremotely.com/categories/remote-management-and-finance-jobs.rss",
            "https://weworkremotely.com/categories/remote-devops-sysadmin-jobs.rss",
            "https://weworkremotely.com/categories/remote-full-stack-programming-jobs.rss",
            "https://weworkremotely.com/categories/remote-front-end-programming-jobs.rss",
            "https://weworkremotely.com/categories/remote-back-end-programming-jobs.rss",
            "https://weworkremotely.com/categories/remote-data-jobs.rss",
        ),
        selector=SelectorSet(
            container=".feature",
            title=".title",
            company=".company",
            location=".region",
            link=".listing-link",
        ),
        priority=1,
    ),
    SourceDescriptor(
        name="RemoteOK",
        url="https://remoteok.com",
        type=SourceType.RSS,
        rss_url="https://remoteok.com/remote-jobs.rss",
        priority=1,
    ),
    SourceDescriptor(
        name="LinkedIn",
        url="https://www.linkedin.com/jobs/search",
        type=SourceType.HTML,
        alternative_urls=(
            "https://www.linkedin.com/jobs/search?keywords=software%20engineer&location=Worldwide&f_WT=2",
            "https://www.linkedin.com/jobs/search?keywords=developer&location=Worldwide&f_WT=2",
            "https://www.linkedin.com/jobs/search?keywords=data%20scientist&location=Worldwide&f_WT=2",
            "https://www.linkedin.com/jobs/search?keywords=product%20manager&location=Worldwide&f_WT=2",
            "https://www.linkedin.com/jobs/search?keywords=designer&location=Worldwide&f_WT=2",
        ),
        pagination=Pagination(
            enabled=True,
            max_pages=5,
            param="start",
            early_termination=True,
            kind=PaginationKind.OFFSET,
            offset_step=25,
        ),
        selector=SelectorSet(
            container=".job-search-card",
            title=".base-search-card__title",
            company=".base-search-card__subtitle",
            location=".job-search-card__location",
            link=".base-card__full-link",
        ),
        priority=2,
    ),
    SourceDescriptor(
        name="Jobspresso",
        url="https://jobspresso.co",
        type=SourceType.RSS,
        rss_url="https://jobspresso.co/feed/?post_type=job_listing",
        priority=2,
    ),
    SourceDescriptor(
        name="Dribbble",
        url="https://dribbble.com/jobs",
        type=SourceType.HTML,
        alternative_urls=(
            "https://dribbble.com/jobs?location=Anywhere&per_page=100&specialties=UI+Design",
            "https://dribbble.com/jobs?location=Anywhere&per_page=100&specialties=UX+Design",
            "https://dribbble.com/jobs?location=Remote&per_page=100",
        ),
        query_params=(("per_page", "100"),),
        pagination=Pagination(
            enabled=True,
            max_pages=3,
            param="page",
            early_termination=True,
        ),
        selector=SelectorSet(
            container=".job-list-item",
            title=".job-title",
            company=".job-company",
            location=".job-location",
            link=".job-link",
        ),
        priority=3,
    ),
    SourceDescriptor(
        name="Hacker News Who's Hiring",
        url="https://news.ycombinator.com/item?id=39929247",
        type=SourceType.HTML,
        alternative_urls=(
            "https://news.ycombinator.com/item?id=39573462",
            "https://news.ycombinator.com/item?id=39217310",
            "https://news.ycombinator.com/item?id=38842977",
        ),
        selector=SelectorSet(
            container=".commtext",
            title="p",
            company="p",
            location="p",
            link="a",
        ),
        priority=4,
        parser=ParserKind.FORUM,
    ),
)


class SourceRegistry:
    """Name-indexed view over a fixed list of sources."""

    def __init__(self, sources: Optional[Iterable[SourceDescriptor]] = None):
        self._sources: List[SourceDescriptor] = list(JOB_SOURCES if sources is None else sources)
        for source in self._sources:
            source.validate()
        self._by_name: Dict[str, SourceDescriptor] = {s.name.lower(): s for s in self._sources}

    def __iter__(self):
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def get(self, name: str) -> Optional[SourceDescriptor]:
        """Case-insensitive lookup by source name."""
        return self._by_name.get((name or "").lower())

    def resolve(self, source_filter: str = "all") -> List[SourceDescriptor]:
        """Sources matching the filter, sorted by ascending priority."""
        if (source_filter or "all").lower() == "all":
            selected = list(self._sources)
        else:
            match = self.get(source_filter)
            selected = [match] if match else []
        return sorted(selected, key=lambda s: s.priority)

    def describe(self) -> List[Dict[str, str]]:
        return [{"name": s.name, "url": s.url} for s in self._sources]


def priority_bands(sources: Sequence[SourceDescriptor]) -> List[List[SourceDescriptor]]:
    """Group sources into bands of equal priority, lowest value first."""
    ordered = sorted(sources, key=lambda s: s.priority)
    return [list(band) for _, band in groupby(ordered, key=lambda s: s.priority)]
