"""
RSS feed extraction with per-source heuristics for company and location.
"""

from __future__ import annotations

import re
from typing import AbstractSet, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from jobharvest.extract.html import document_key, strip_html
from jobharvest.models import Job, SourceDescriptor, normalize_text, to_iso


# (title, description_html, company, location) -> (company, location)
Heuristic = Callable[[str, str, str, str], Tuple[str, str]]

_AT_COMPANY = re.compile(r"\bat\s+([^(]+)")
_AT_COMPANY_NO_COMMA = re.compile(r"\bat\s+([^,]+)")
_IN_LOCATION = re.compile(r"\bin\s+([^(]+)")
_LABELLED_COMPANY = re.compile(r"Company:\s*([^<]+)")
_LABELLED_LOCATION = re.compile(r"Location:\s*([^<]+)")


def _remoteok(title: str, description: str, company: str, location: str) -> Tuple[str, str]:
    soup = BeautifulSoup(description, "lxml")
    company_tag = soup.select_one(".company")
    location_tag = soup.select_one(".location")
    if company_tag and company_tag.get_text(strip=True):
        company = company_tag.get_text(strip=True)
    if location_tag and location_tag.get_text(strip=True):
        location = location_tag.get_text(strip=True)
    return company, location


def _weworkremotely(title: str, description: str, company: str, location: str) -> Tuple[str, str]:
    # Title format is "Company: Job Title"
    parts = title.split(":")
    if len(parts) > 1 and parts[0].strip():
        company = parts[0].strip()
    return company, location


def _authenticjobs(title: str, description: str, company: str, location: str) -> Tuple[str, str]:
    m = _AT_COMPANY_NO_COMMA.search(title)
    if m:
        company = m.group(1).strip()
    m = _IN_LOCATION.search(title)
    if m:
        location = m.group(1).strip()
    return company, location


def _title_at_company(title: str, description: str, company: str, location: str) -> Tuple[str, str]:
    # "Job Title at Company (Location)"
    m = _AT_COMPANY.search(title)
    if m:
        company = m.group(1).strip()
    return company, location


def _jobspresso(title: str, description: str, company: str, location: str) -> Tuple[str, str]:
    m = _LABELLED_COMPANY.search(description)
    if m:
        company = m.group(1).strip()
    m = _LABELLED_LOCATION.search(description)
    if m:
        location = m.group(1).strip()
    return company, location


SOURCE_HEURISTICS: Dict[str, Heuristic] = {
    "RemoteOK": _remoteok,
    "WeWorkRemotely": _weworkremotely,
    "AuthenticJobs": _authenticjobs,
    "StackOverflow": _title_at_company,
    "Jobspresso": _jobspresso,
    "Smashing Magazine Jobs": _title_at_company,
}


def _child_text(item, name: str) -> str:
    tag = item.find(name)
    return tag.get_text().strip() if tag else ""


def parse_rss(
    xml: str,
    source: SourceDescriptor,
    base_url: Optional[str] = None,
    seen_ids: AbstractSet[str] = frozenset(),
) -> List[Job]:
    """
    Extract job records from an RSS document of `source`.

    Company defaults to the source name and location to "Remote" unless a
    source heuristic finds better values in the title or description.
    """
    if not xml:
        return []

    base_url = base_url or source.rss_url or source.url
    soup = BeautifulSoup(xml, "xml")
    heuristic = SOURCE_HEURISTICS.get(source.name)
    doc = document_key(base_url)
    prefix = source.name.lower()
    jobs: List[Job] = []

    for i, item in enumerate(soup.find_all("item")):
        job_id = f"{prefix}-rss-{doc}-{i}"
        if job_id in seen_ids:
            continue

        title = normalize_text(_child_text(item, "title"))
        if not title:
            continue

        link = _child_text(item, "link")
        description_html = _child_text(item, "description")
        pub_date = _child_text(item, "pubDate")

        company, location = source.name, "Remote"
        if heuristic:
            company, location = heuristic(title, description_html, company, location)

        jobs.append(Job(
            id=job_id,
            title=title,
            company=company or source.name,
            location=location or "Remote",
            url=link or source.url,
            source=source.name,
            description=strip_html(description_html) or None,
            posted_at=to_iso(pub_date),
        ))

    return jobs
