"""
Heuristic extractor.

Finds job listings on arbitrary career pages by trying common container
selectors, then pulling a title, URL and location out of each container.
Used when a page carries no JSON-LD JobPosting data.
"""

import logging
from typing import List, Optional, Set
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from core.models import ParsedJob
from core.normalize import generate_external_id, is_remote_location

logger = logging.getLogger(__name__)

# Tried in order; the first family that yields a job wins.
JOB_SELECTORS = [
    '[data-job]',
    '[data-job-id]',
    '.job-listing',
    '.job-item',
    '.job-card',
    '.job-post',
    '.career-item',
    '.career-listing',
    '.opening',
    '.position',
    '.vacancy',
    '.jobs-list li',
    '.careers-list li',
    '.openings-list li',
    'a[href*="/job/"]',
    'a[href*="/jobs/"]',
    'a[href*="/career"]',
    'a[href*="/position"]',
    'a[href*="/opening"]',
    'a[href*="/apply"]',
]

TITLE_SELECTORS = [
    'h1',
    'h2',
    'h3',
    'h4',
    '.job-title',
    '.position-title',
    '.title',
    '[data-title]',
    'a',
]

LOCATION_SELECTORS = [
    '.location',
    '.job-location',
    '[data-location]',
    '.city',
    '.office',
]

# Navigation links that match the job selectors but are not jobs
SKIP_PHRASES = [
    'about us',
    'contact',
    'home',
    'blog',
    'news',
    'login',
    'sign up',
    'privacy',
    'terms',
    'cookie',
]

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 200


def _text(element: Tag) -> str:
    return ' '.join(element.get_text(' ').split())


def _valid_title(title: Optional[str]) -> bool:
    return bool(title) and MIN_TITLE_LENGTH <= len(title) < MAX_TITLE_LENGTH


def extract_title(element: Tag) -> Optional[str]:
    for selector in TITLE_SELECTORS:
        title_el = element.select_one(selector)
        if title_el is not None:
            title = _text(title_el)
            if _valid_title(title):
                return title

    if element.name == 'a':
        title = _text(element)
        if _valid_title(title):
            return title
    return None


def extract_url(element: Tag, base_url: str) -> Optional[str]:
    href = element.get('href')
    if not href:
        link = element.find('a', href=True)
        href = link.get('href') if link else None
    if not href:
        return None
    return urljoin(base_url, href.strip())


def extract_location(element: Tag) -> Optional[str]:
    for selector in LOCATION_SELECTORS:
        loc_el = element.select_one(selector)
        if loc_el is not None:
            location = _text(loc_el)
            if location:
                return location
    return None


def _is_skipped(title: str) -> bool:
    title_lower = title.lower()
    return any(phrase in title_lower for phrase in SKIP_PHRASES)


def extract_jobs_from_dom(soup: BeautifulSoup, base_url: str) -> List[ParsedJob]:
    """
    Extract job listings from page markup.

    Args:
        soup: Parsed page
        base_url: Page URL; relative links resolve against it and jobs with
            no link of their own point at it

    Returns:
        Jobs found by the first selector family that matched anything
    """
    for selector in JOB_SELECTORS:
        jobs: List[ParsedJob] = []
        seen_urls: Set[str] = set()

        for index, element in enumerate(soup.select(selector)):
            title = extract_title(element)
            if not title or _is_skipped(title):
                continue

            url = extract_url(element, base_url)
            if url:
                if url in seen_urls:
                    continue
                seen_urls.add(url)

            location = extract_location(element)
            jobs.append(ParsedJob(
                external_id=generate_external_id(url, title, index),
                title=title,
                url=url or base_url,
                location=location,
                remote=is_remote_location(location),
            ))

        if jobs:
            logger.info(f"[heuristics] {base_url}: {len(jobs)} jobs via '{selector}'")
            return jobs

    return []
