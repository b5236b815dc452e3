"""
Shared fixtures: in-memory stand-ins for the PostgreSQL stores.

The listing fake runs the real merge planner, so merge semantics tested
through the orchestrator are the ones the psycopg2 store executes.
"""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from app.config import CrawlSettings
from core.errors import InvalidStatusTransition
from core.models import (
    AtsType,
    Company,
    CrawlLog,
    CrawlStatus,
    JobListing,
    JobProfile,
    JobStatus,
    ParsedJob,
    can_transition,
)
from crawler.ats.base import AtsParser
from crawler.ats.registry import ParserRegistry
from crawler.browser_crawler import BrowserManager
from pipeline.listing_store import MergeOutcome, plan_merge


class FakeCompanyStore:
    def __init__(self, companies: Optional[List[Company]] = None):
        self.companies = list(companies or [])

    def get_company(self, user_id, company_id):
        for c in self.companies:
            if c.id == company_id and c.user_id == user_id:
                return c
        return None

    def list_companies(self, user_id, active_only=False):
        rows = [c for c in self.companies if c.user_id == user_id and (c.active or not active_only)]
        return sorted(rows, key=lambda c: c.name)

    def list_active(self, user_id):
        return self.list_companies(user_id, active_only=True)


class FakeProfileStore:
    def __init__(self, profiles: Optional[Dict[int, JobProfile]] = None):
        self.profiles = dict(profiles or {})

    def get_profile(self, user_id):
        return self.profiles.get(user_id)

    def upsert_profile(self, profile):
        self.profiles[profile.user_id] = profile
        return profile


class FakeCrawlLogStore:
    def __init__(self, companies: FakeCompanyStore):
        self._companies = companies
        self._ids = itertools.count(1)
        self.logs: Dict[int, CrawlLog] = {}
        self.fail_stale_calls: List[int] = []

    def start(self, company_id):
        log_id = next(self._ids)
        self.logs[log_id] = CrawlLog(id=log_id, company_id=company_id, started_at=datetime.now(timezone.utc))
        return log_id

    def complete(self, log_id, status, jobs_found=0, new_jobs=0, error=None):
        log = self.logs[log_id]
        log.status = status
        log.jobs_found = jobs_found
        log.new_jobs = new_jobs
        log.error = error
        log.completed_at = datetime.now(timezone.utc)

    def list_logs(self, user_id, company_id=None, limit=20):
        owned = {c.id for c in self._companies.companies if c.user_id == user_id}
        rows = [
            log for log in self.logs.values()
            if log.company_id in owned and (company_id is None or log.company_id == company_id)
        ]
        rows.sort(key=lambda log: log.id, reverse=True)
        return rows[:limit]

    def fail_stale(self, user_id, older_than_minutes=5):
        self.fail_stale_calls.append(user_id)
        return 0

    def for_company(self, company_id) -> List[CrawlLog]:
        return [log for log in self.logs.values() if log.company_id == company_id]


class FakeListingStore:
    def __init__(self, companies: FakeCompanyStore):
        self._companies = companies
        self._ids = itertools.count(1)
        self.rows: Dict[int, JobListing] = {}
        self.score_writes: List[Dict[int, int]] = []
        self.merge_errors: Dict[int, Exception] = {}

    def _find(self, company_id, external_id):
        for row in self.rows.values():
            if row.company_id == company_id and row.external_id == external_id:
                return row
        return None

    def _owned(self, user_id):
        owned = {c.id for c in self._companies.companies if c.user_id == user_id}
        return [row for row in self.rows.values() if row.company_id in owned]

    def merge_jobs(self, company_id, jobs, scorer):
        if company_id in self.merge_errors:
            raise self.merge_errors[company_id]
        existing = {row.external_id for row in self.rows.values() if row.company_id == company_id}
        plan = plan_merge(jobs, existing, scorer)
        now = datetime.now(timezone.utc)

        for job, score in plan.inserts:
            listing_id = next(self._ids)
            self.rows[listing_id] = JobListing(
                id=listing_id,
                company_id=company_id,
                external_id=job.external_id,
                title=job.title,
                url=job.url,
                location=job.location,
                remote=job.remote,
                department=job.department,
                description=job.description,
                posted_at=job.posted_at,
                first_seen_at=now,
                last_seen_at=now,
                status=JobStatus.NEW,
                match_score=score,
            )
        for job, score in plan.updates:
            row = self._find(company_id, job.external_id)
            row.title = job.title
            row.url = job.url
            row.location = job.location
            row.remote = job.remote
            row.department = job.department
            row.description = job.description
            row.posted_at = job.posted_at
            row.last_seen_at = now
            row.match_score = score
        return MergeOutcome(jobs_found=plan.jobs_found, new_jobs=plan.new_jobs)

    def get_listing(self, user_id, listing_id):
        row = self.rows.get(listing_id)
        return row if row in self._owned(user_id) else None

    def list_listings(self, user_id, company_id=None, status=None, min_score=None, limit=50, offset=0):
        rows = [
            r for r in self._owned(user_id)
            if (company_id is None or r.company_id == company_id)
            and (status is None or r.status == status)
            and (min_score is None or (r.match_score or 0) >= min_score)
        ]
        rows.sort(key=lambda r: (-(r.match_score or 0), -r.first_seen_at.timestamp()))
        return rows[offset:offset + limit], len(rows)

    def update_status(self, user_id, listing_id, status):
        row = self.get_listing(user_id, listing_id)
        if row is None:
            return None
        if row.status == status:
            return row
        if not can_transition(row.status, status):
            raise InvalidStatusTransition(row.status.value, status.value)
        row.status = status
        return row

    def batch_update_status(self, user_id, listing_ids, status):
        updated = 0
        for row in self._owned(user_id):
            if row.id in listing_ids and can_transition(row.status, status):
                row.status = status
                updated += 1
        return updated

    def cleanup_dismissed(self, user_id=None, older_than_days=30, dry_run=False):
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        rows = self._owned(user_id) if user_id is not None else list(self.rows.values())
        doomed = [r for r in rows if r.status == JobStatus.DISMISSED and r.last_seen_at < cutoff]
        if not dry_run:
            for r in doomed:
                del self.rows[r.id]
        return len(doomed)

    def iter_scoring_batches(self, user_id, batch_size=100):
        rows = sorted(self._owned(user_id), key=lambda r: r.id)
        for i in range(0, len(rows), batch_size):
            yield rows[i:i + batch_size]

    def update_match_scores(self, scores):
        self.score_writes.append(dict(scores))
        for listing_id, score in scores.items():
            self.rows[listing_id].match_score = score
        return len(scores)

    def get_stats(self, user_id):
        rows = self._owned(user_id)
        by_status: Dict[str, int] = {}
        for r in rows:
            by_status[r.status.value] = by_status.get(r.status.value, 0) + 1
        return {"total": len(rows), "byStatus": by_status, "newSinceLastWeek": len(rows)}

    def for_company(self, company_id) -> List[JobListing]:
        return [r for r in self.rows.values() if r.company_id == company_id]


class FakeParser(AtsParser):
    """Parser returning canned jobs (or raising) per career URL."""

    def __init__(self, name="fake", requires_browser=False, jobs_by_url=None, errors_by_url=None):
        self.name = name
        super().__init__()
        self.requires_browser = requires_browser
        self.jobs_by_url = dict(jobs_by_url or {})
        self.errors_by_url = dict(errors_by_url or {})
        self.calls: List[str] = []

    async def parse(self, career_url):
        self.calls.append(career_url)
        if career_url in self.errors_by_url:
            raise self.errors_by_url[career_url]
        return list(self.jobs_by_url.get(career_url, []))


class FakeBrowserManager(BrowserManager):
    """Real session locking; launching and closing only counted."""

    def __init__(self):
        super().__init__(launcher=self._launch)
        self.close_calls = 0
        self.events: List[str] = []

    async def _launch(self):
        return object()

    async def close(self):
        self.close_calls += 1
        self.events.append("close")


def make_company(company_id, ats_type=AtsType.GREENHOUSE, user_id=1, url=None, active=True, name=None):
    return Company(
        id=company_id,
        user_id=user_id,
        name=name or f"Company {company_id:02d}",
        career_page_url=url or f"https://careers.example.com/{company_id}",
        ats_type=ats_type,
        active=active,
    )


def make_job(external_id, title="Software Engineer", **kwargs):
    return ParsedJob(
        external_id=str(external_id),
        title=title,
        url=kwargs.pop("url", f"https://careers.example.com/jobs/{external_id}"),
        **kwargs,
    )


@pytest.fixture
def settings():
    return CrawlSettings(browser_delay_seconds=2.0, api_concurrency=2)


@pytest.fixture
def company_store():
    return FakeCompanyStore()


@pytest.fixture
def listing_store(company_store):
    return FakeListingStore(company_store)


@pytest.fixture
def crawl_log_store(company_store):
    return FakeCrawlLogStore(company_store)


@pytest.fixture
def profile_store():
    return FakeProfileStore()


@pytest.fixture
def api_parser():
    return FakeParser(name="greenhouse")


@pytest.fixture
def browser_parser():
    return FakeParser(name="custom", requires_browser=True)


@pytest.fixture
def registry(api_parser, browser_parser):
    registry = ParserRegistry()
    registry.register(AtsType.GREENHOUSE, api_parser)
    registry.register(AtsType.LEVER, api_parser)
    registry.register(AtsType.ASHBY, api_parser)
    for ats_type in (AtsType.SMARTRECRUITERS, AtsType.WORKDAY, AtsType.CUSTOM):
        registry.register(ats_type, browser_parser)
    return registry


@pytest.fixture
def browser_manager():
    return FakeBrowserManager()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def orchestrator(company_store, listing_store, crawl_log_store, profile_store, registry, browser_manager, settings, sleeps):
    from orchestrator import CrawlOrchestrator

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return CrawlOrchestrator(
        companies=company_store,
        listings=listing_store,
        crawl_logs=crawl_log_store,
        profiles=profile_store,
        registry=registry,
        browser_manager=browser_manager,
        settings=settings,
        sleep=fake_sleep,
    )
