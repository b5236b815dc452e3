"""
JSON-LD extractor.

Extracts job postings from structured JSON-LD data (Schema.org JobPosting)
embedded in a rendered career page.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from core.models import ParsedJob
from core.normalize import generate_external_id, is_remote_location, parse_timestamp, strip_html

logger = logging.getLogger(__name__)


def extract_job_postings(soup: BeautifulSoup, base_url: str) -> List[ParsedJob]:
    """
    Collect every JobPosting found in ``<script type="application/ld+json">``.

    Args:
        soup: Parsed page
        base_url: Page URL, used to resolve relative posting URLs

    Returns:
        Parsed jobs in document order; empty when the page carries none
    """
    jobs: List[ParsedJob] = []

    for script in soup.find_all('script', type='application/ld+json'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug(f"[jsonld] Failed to parse JSON-LD block on {base_url}: {e}")
            continue

        for item in _flatten(data):
            if not _is_job_posting(item):
                continue
            job = _to_parsed_job(item, base_url, len(jobs))
            if job:
                jobs.append(job)

    if jobs:
        logger.info(f"[jsonld] {base_url}: {len(jobs)} JobPosting entries")
    return jobs


def _flatten(data: Any) -> List[Dict]:
    """Flatten a JSON-LD document (object, list or @graph) to its items."""
    items = []

    if isinstance(data, list):
        for entry in data:
            items.extend(_flatten(entry))
    elif isinstance(data, dict):
        if isinstance(data.get('@graph'), list):
            items.extend(_flatten(data['@graph']))
        elif isinstance(data.get('itemListElement'), list):
            for element in data['itemListElement']:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    items.append(element['item'])
        else:
            items.append(data)

    return items


def _is_job_posting(item: Dict) -> bool:
    item_type = item.get('@type', '')
    if isinstance(item_type, str):
        return item_type == 'JobPosting'
    if isinstance(item_type, list):
        return 'JobPosting' in item_type
    return False


def _identifier(item: Dict) -> Optional[str]:
    ident = item.get('identifier')
    if isinstance(ident, dict):
        # PropertyValue
        ident = ident.get('value')
    if ident is None or ident == '':
        return None
    return str(ident)


def _location(item: Dict) -> Optional[str]:
    loc = item.get('jobLocation')
    if isinstance(loc, list):
        loc = loc[0] if loc else None
    if isinstance(loc, str):
        return loc.strip() or None
    if not isinstance(loc, dict):
        return None

    addr = loc.get('address')
    if isinstance(addr, str):
        return addr.strip() or None
    if isinstance(addr, dict):
        parts = []
        for key in ('addressLocality', 'addressRegion', 'addressCountry'):
            value = addr.get(key)
            if isinstance(value, dict):
                value = value.get('name')
            if value:
                parts.append(str(value).strip())
        return ', '.join(parts) or None
    name = loc.get('name')
    return str(name).strip() if name else None


def _to_parsed_job(item: Dict, base_url: str, index: int) -> Optional[ParsedJob]:
    title = str(item.get('title') or '').strip()
    if not title:
        return None

    url = urljoin(base_url, str(item.get('url') or base_url))
    location = _location(item)
    telecommute = str(item.get('jobLocationType') or '').upper() == 'TELECOMMUTE'
    department = item.get('occupationalCategory')

    return ParsedJob(
        external_id=_identifier(item) or generate_external_id(url if item.get('url') else '', title, index),
        title=title,
        url=url,
        location=location,
        remote=telecommute or is_remote_location(location),
        department=str(department).strip() if department else None,
        description=strip_html(item.get('description')),
        posted_at=parse_timestamp(item.get('datePosted')),
    )
