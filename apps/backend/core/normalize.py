"""
Normalization helpers shared by the ATS parsers and the browser crawler.
"""
import hashlib
import html
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

REMOTE_PHRASES = ("remote", "work from home", "wfh", "anywhere", "distributed")

# Numeric job ids embedded in career-page URLs
EXTERNAL_ID_PATTERNS = [
    re.compile(r"/jobs?/(\d+)", re.I),
    re.compile(r"/positions?/(\d+)", re.I),
    re.compile(r"/openings?/(\d+)", re.I),
    re.compile(r"[?&]id=(\d+)", re.I),
    re.compile(r"[?&]job[_-]?id=(\d+)", re.I),
]

def strip_html(content: Optional[str]) -> Optional[str]:
    """
    Visible text of an HTML fragment with whitespace collapsed.

    Greenhouse ships its content entity-escaped, so one level of escaping is
    undone before parsing. Entities that remain are decoded by the parser.
    """
    if not content:
        return None
    soup = BeautifulSoup(html.unescape(content), 'lxml')
    text = ' '.join(soup.get_text(' ').split())
    return text or None


def is_remote_location(location: Optional[str]) -> bool:
    if not location:
        return False
    location_lower = location.lower()
    return any(phrase in location_lower for phrase in REMOTE_PHRASES)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a vendor timestamp into an aware datetime.

    Accepts datetimes, ISO-8601 strings and epoch milliseconds (Lever).
    Unparseable values yield None rather than failing the whole crawl.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        try:
            dt = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            try:
                dt = date_parser.parse(str(value))
            except (ValueError, OverflowError) as e:
                logger.debug(f"Could not parse timestamp '{value}': {e}")
                return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _digest(text: str, length: int) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:length]


def generate_external_id(url: Optional[str], title: str, index: int) -> str:
    """
    Derive a stable external id for a scraped job.

    Priority: numeric id found in the URL, then a hash of the URL, then a
    hash of the title combined with the element's position on the page.
    """
    if url:
        for pattern in EXTERNAL_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)
        return f"url_{_digest(url, 16)}"
    return f"title_{_digest(title, 12)}_{index}"
