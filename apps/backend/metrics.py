"""
Prometheus counters for crawl runs.

Served by main.py on /metrics.
"""
import logging

from prometheus_client import Counter, generate_latest

logger = logging.getLogger(__name__)

companies_crawled = Counter(
    'jobradar_companies_crawled_total',
    'Company crawls completed, by outcome and crawl phase',
    ['status', 'phase'],
)
jobs_found = Counter('jobradar_jobs_found_total', 'Jobs returned by parsers')
jobs_new = Counter('jobradar_jobs_new_total', 'Listings inserted for the first time')
browser_launches = Counter('jobradar_browser_launches_total', 'Headless browser launches')
browser_recycles = Counter('jobradar_browser_recycles_total', 'Headless browser recycles')


def record_crawl(status: str, phase: str, found: int = 0, new: int = 0):
    """Record one finished company crawl."""
    companies_crawled.labels(status=status, phase=phase).inc()
    if found > 0:
        jobs_found.inc(found)
    if new > 0:
        jobs_new.inc(new)


def record_browser_launch():
    browser_launches.inc()


def record_browser_recycle():
    browser_recycles.inc()


def render() -> bytes:
    """Current metrics in the Prometheus text exposition format."""
    return generate_latest()
