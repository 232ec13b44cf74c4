"""
HTML job-listing extraction.

parse_html() is a pure function of its arguments so it can run in a worker
process. Structured sources are read through their CSS selector set;
forum-style sources (comment threads) are mined with regex heuristics.
"""

from __future__ import annotations

import hashlib
import re
from typing import AbstractSet, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from jobharvest.models import Job, ParserKind, SourceDescriptor, normalize_text


def strip_html(html: str, max_len: int = 8000) -> str:
    """
    Convert HTML to plain text.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    for tag in soup(["script", "style", "noscript", "iframe", "svg", "canvas"]):
        tag.decompose()

    text = soup.get_text(" ", strip=True)
    text = re.sub(r"\s+", " ", text).strip()

    return text[:max_len]


def document_key(url: str) -> str:
    """Short stable digest of a document URL, used to keep ids unique across pages."""
    return hashlib.sha1((url or "").encode("utf-8")).hexdigest()[:8]


# ----------------------------- Forum-style heuristics -----------------------------

_ROLE_WORDS = (
    "engineer|developer|designer|manager|director|architect|lead|senior|junior|intern|"
    "specialist|consultant|analyst|scientist|researcher|administrator|coordinator|"
    "strategist|marketer|writer|editor|producer|head of|vp of|chief|cto|ceo|coo|cfo"
)
TITLE_RE = re.compile(r"([^|:]+?(?:" + _ROLE_WORDS + r").*?)(?:\||$)", re.IGNORECASE)

_COMPANY_SUFFIXES = (
    "Inc|LLC|Ltd|GmbH|BV|SAS|AG|Co|Corp|Corporation|Technologies|Technology|Software|"
    "Systems|Labs|Studio|Media|Group|Partners|Ventures|Capital|Solutions"
)
COMPANY_RE = re.compile(
    r"(?:^|\|)\s*([A-Za-z0-9\s&.']+?(?:\s(?:" + _COMPANY_SUFFIXES + r"))?)\s*(?:\||$)"
)

_CITIES = (
    "San Francisco|New York|London|Berlin|Austin|Seattle|Boston|Toronto|Vancouver|"
    "Amsterdam|Paris|Sydney|Melbourne|Singapore|Hong Kong|Tokyo|Dubai|Tel Aviv|Chicago|"
    "Los Angeles|Denver|Portland|Atlanta|Miami|Dallas|Washington DC|Barcelona|Munich|"
    "Zurich|Stockholm|Copenhagen|Oslo|Helsinki|Dublin|Brussels|Vienna|Madrid|Rome|Milan|"
    "Warsaw|Prague|Budapest|Lisbon|Athens"
)
LOCATION_RE = re.compile(
    r"(?:REMOTE|ONSITE|HYBRID|(?:" + _CITIES + r")(?:[^a-zA-Z]|$))", re.IGNORECASE
)

_CURRENCY = r"(?:\$|€|£|USD|EUR|GBP)"
SALARY_RE = re.compile(
    _CURRENCY + r"[,\d]+(?:\s*-\s*" + _CURRENCY + r"[,\d]+)?"
    r"(?:\s*(?:k|K|thousand|million|M|per year|/year|yearly|annual|p\.a\.|pa|/yr|a year))?",
    re.IGNORECASE,
)
EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
URL_RE = re.compile(r"https?://[^\s)]+")

MIN_COMMENT_LEN = 30
DESCRIPTION_LEN = 300


def _parse_forum(
    soup: BeautifulSoup,
    source: SourceDescriptor,
    base_url: str,
    seen_ids: AbstractSet[str],
) -> List[Job]:
    jobs: List[Job] = []

    for i, el in enumerate(soup.select(".commtext")):
        text = el.get_text(" ").strip()
        if len(text) < MIN_COMMENT_LEN:
            continue

        title_match = TITLE_RE.search(text)
        company_match = COMPANY_RE.search(text)
        if not title_match and not company_match:
            continue

        location_match = LOCATION_RE.search(text)
        salary_match = SALARY_RE.search(text)

        title = title_match.group(1).strip() if title_match else "Software Engineer"
        company = company_match.group(1).strip() if company_match else "Unknown Company"
        location = location_match.group(0).strip(" ,;.|()") if location_match else "Unknown Location"
        salary = salary_match.group(0).strip() if salary_match else None

        # Prefer the comment permalink, then any link or email in the text
        row = el.find_parent(class_="athing")
        comment_id = row.get("id") if row else None
        url_match = URL_RE.search(text)
        email_match = EMAIL_RE.search(text)
        if comment_id:
            url = f"https://news.ycombinator.com/item?id={comment_id}"
        elif url_match:
            url = url_match.group(0)
        elif email_match:
            url = f"mailto:{email_match.group(0)}"
        else:
            url = base_url

        job_id = f"hn-{base_url}-{i}"
        if job_id in seen_ids:
            continue

        description = text[:DESCRIPTION_LEN] + "..." if len(text) > DESCRIPTION_LEN else text

        jobs.append(Job(
            id=job_id,
            title=title,
            company=company,
            location=location,
            url=url,
            source=source.name,
            description=description,
            salary=salary,
        ))

    return jobs


# ----------------------------- Structured sources -----------------------------

def _select_text(container, selector: str) -> str:
    node = container.select_one(selector) if selector else None
    return normalize_text(node.get_text(" ")) if node else ""


def _select_href(container, selector: str) -> str:
    node = container.select_one(selector) if selector else None
    if node is None:
        return ""
    href = node.get("href") or ""
    return href.strip() if isinstance(href, str) else ""


def parse_html(
    markup: str,
    source: SourceDescriptor,
    base_url: Optional[str] = None,
    seen_ids: AbstractSet[str] = frozenset(),
) -> List[Job]:
    """
    Extract job records from an HTML page of `source`.

    Ids listed in `seen_ids` (the incremental ledger) are skipped, as are
    containers without a title. Relative links resolve against `base_url`.
    """
    if source.selector is None or not markup:
        return []

    base_url = base_url or source.url
    soup = BeautifulSoup(markup, "lxml")

    if source.parser == ParserKind.FORUM:
        return _parse_forum(soup, source, base_url, seen_ids)

    selector = source.selector
    doc = document_key(base_url)
    prefix = source.name.lower()
    jobs: List[Job] = []

    for i, container in enumerate(soup.select(selector.container)):
        job_id = f"{prefix}-{doc}-{i}"
        if job_id in seen_ids:
            continue

        title = _select_text(container, selector.title)
        if not title:
            continue

        link = _select_href(container, selector.link)
        if link and not link.startswith("http"):
            link = urljoin(base_url, link)

        jobs.append(Job(
            id=job_id,
            title=title,
            company=_select_text(container, selector.company) or source.name,
            location=_select_text(container, selector.location) or "Not specified",
            url=link or base_url,
            source=source.name,
        ))

    return jobs
