"""
Crawl orchestrator.

Crawls a user's companies in two phases: API-backed ATS boards first, as a
bounded concurrent batch, then browser-only career pages one at a time on a
shared, periodically recycled headless browser. Every parsed batch goes
through the same merge into the listing store, whether it was crawled here
or pushed in by the out-of-process local crawler.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, List, Optional

import metrics
from app.config import CrawlSettings
from core.errors import CompanyNotFoundError, CrawlInProgressError, StoreError
from core.matching import calculate_match_score, calculate_match_score_with_breakdown
from core.models import Company, CrawlAllResult, CrawlLog, CrawlResult, CrawlStatus, JobProfile, ParsedJob
from crawler.ats import ParserRegistry
from crawler.browser_crawler import BrowserManager
from pipeline.company_store import CompanyStore, JobProfileStore
from pipeline.crawl_logs import CrawlLogStore
from pipeline.listing_store import SCORING_BATCH_SIZE, JobListingStore

logger = logging.getLogger(__name__)

__all__ = ["CrawlOrchestrator", "calculate_match_score_with_breakdown"]

PHASE_IDLE = "idle"
PHASE_API = "api"
PHASE_BROWSER = "browser"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class CrawlOrchestrator:
    """Runs company crawls for a user and merges the results into the listing store."""

    def __init__(
        self,
        companies: CompanyStore,
        listings: JobListingStore,
        crawl_logs: CrawlLogStore,
        profiles: JobProfileStore,
        registry: ParserRegistry,
        browser_manager: BrowserManager,
        settings: Optional[CrawlSettings] = None,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
    ):
        self.companies = companies
        self.listings = listings
        self.crawl_logs = crawl_logs
        self.profiles = profiles
        self.registry = registry
        self.browser_manager = browser_manager
        self.settings = settings or CrawlSettings()
        self._sleep = sleep
        self.phase = PHASE_IDLE
        self._user_locks: Dict[int, asyncio.Lock] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: int):
        """Advisory lock: one crawl operation per user at a time."""
        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        if lock.locked():
            raise CrawlInProgressError(user_id)
        async with lock:
            yield

    def _scorer(self, profile: Optional[JobProfile]):
        return lambda job: calculate_match_score(job, profile)

    def _fail_log(self, log_id: int, error: str):
        """Best effort: the original StoreError is what the caller sees."""
        try:
            self.crawl_logs.complete(log_id, CrawlStatus.FAILED, error=error)
        except StoreError as e:
            logger.error(f"[orchestrator] Could not mark crawl log {log_id} failed: {e}")

    def _merge(self, log_id: int, company: Company, jobs: List[ParsedJob], profile: Optional[JobProfile]):
        try:
            outcome = self.listings.merge_jobs(company.id, jobs, self._scorer(profile))
        except StoreError as e:
            logger.error(f"[orchestrator] Saving jobs failed for {company.name} ({company.id}): {e}")
            self._fail_log(log_id, str(e))
            raise
        self.crawl_logs.complete(log_id, CrawlStatus.SUCCESS, outcome.jobs_found, outcome.new_jobs)
        return outcome

    async def _crawl_one(self, company: Company, profile: Optional[JobProfile], phase: str) -> CrawlResult:
        """
        Crawl and merge one company.

        Parser and navigation failures are recorded on the crawl log and
        returned as a failed CrawlResult. StoreError is recorded when the
        log can still be written, then propagates.
        """
        start = time.monotonic()
        log_id = self.crawl_logs.start(company.id)
        parser = self.registry.get(company.ats_type)

        try:
            jobs = await parser.parse(company.career_page_url)
        except StoreError as e:
            self._fail_log(log_id, str(e))
            raise
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.error(f"[orchestrator] Crawl failed for {company.name} ({company.id}): {error}", exc_info=True)
            self.crawl_logs.complete(log_id, CrawlStatus.FAILED, error=error)
            metrics.record_crawl(CrawlStatus.FAILED.value, phase)
            return CrawlResult(
                company_id=company.id,
                company_name=company.name,
                status=CrawlStatus.FAILED,
                error=error,
                duration_ms=_elapsed_ms(start),
            )

        outcome = self._merge(log_id, company, jobs, profile)
        metrics.record_crawl(CrawlStatus.SUCCESS.value, phase, outcome.jobs_found, outcome.new_jobs)
        logger.info(
            f"[orchestrator] {company.name}: {outcome.jobs_found} jobs, {outcome.new_jobs} new "
            f"({_elapsed_ms(start)}ms)"
        )
        return CrawlResult(
            company_id=company.id,
            company_name=company.name,
            status=CrawlStatus.SUCCESS,
            jobs_found=outcome.jobs_found,
            new_jobs=outcome.new_jobs,
            duration_ms=_elapsed_ms(start),
        )

    def _require_company(self, user_id: int, company_id: int) -> Company:
        company = self.companies.get_company(user_id, company_id)
        if company is None:
            raise CompanyNotFoundError(company_id)
        return company

    async def crawl_company(self, user_id: int, company_id: int) -> CrawlResult:
        """Crawl a single company now. Raises CompanyNotFoundError and CrawlInProgressError."""
        self.crawl_logs.fail_stale(user_id, self.settings.stuck_crawl_minutes)
        company = self._require_company(user_id, company_id)
        profile = self.profiles.get_profile(user_id)

        async with self._user_lock(user_id):
            if not self.registry.requires_browser(company.ats_type):
                self.phase = PHASE_API
                try:
                    return await self._crawl_one(company, profile, PHASE_API)
                finally:
                    self.phase = PHASE_IDLE

            async with self.browser_manager.session():
                self.phase = PHASE_BROWSER
                try:
                    return await self._crawl_one(company, profile, PHASE_BROWSER)
                finally:
                    self.phase = PHASE_IDLE

    async def crawl_all_companies(self, user_id: int, api_only: bool = False) -> CrawlAllResult:
        """
        Crawl every active company of ``user_id``.

        Args:
            user_id: Owner of the companies
            api_only: Skip browser-only companies and report their ids in
                ``skipped_company_ids`` so an external crawler can handle them

        Returns:
            CrawlAllResult with per-company results and aggregate counts
        """
        self.crawl_logs.fail_stale(user_id, self.settings.stuck_crawl_minutes)

        async with self._user_lock(user_id):
            companies = self.companies.list_active(user_id)
            profile = self.profiles.get_profile(user_id)

            api_companies = [c for c in companies if not self.registry.requires_browser(c.ats_type)]
            browser_companies = [c for c in companies if self.registry.requires_browser(c.ats_type)]

            result = CrawlAllResult()
            logger.info(
                f"[orchestrator] user {user_id}: crawling {len(api_companies)} API companies, "
                f"{0 if api_only else len(browser_companies)} browser companies"
            )

            try:
                self.phase = PHASE_API
                for crawl_result in await self._run_api_phase(api_companies, profile):
                    result.add(crawl_result)

                if api_only:
                    result.skipped_company_ids = [c.id for c in browser_companies]
                elif browser_companies:
                    await self._run_browser_phase(browser_companies, profile, result)
            finally:
                self.phase = PHASE_IDLE

        logger.info(
            f"[orchestrator] user {user_id}: {len(result.results)} crawled, "
            f"{len(result.failures)} failed, {result.total_jobs_found} jobs, {result.new_jobs_found} new"
        )
        return result

    async def _run_api_phase(self, companies: List[Company], profile: Optional[JobProfile]) -> List[CrawlResult]:
        semaphore = asyncio.Semaphore(self.settings.api_concurrency)

        async def bounded(company: Company) -> CrawlResult:
            async with semaphore:
                return await self._crawl_one(company, profile, PHASE_API)

        # Let every company finish (and close its crawl log) before a StoreError surfaces
        results = await asyncio.gather(*(bounded(c) for c in companies), return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(results)

    async def _run_browser_phase(self, companies: List[Company], profile: Optional[JobProfile], result: CrawlAllResult):
        # Strictly sequential, and exclusive across users: the process has one browser
        async with self.browser_manager.session():
            self.phase = PHASE_BROWSER
            for index, company in enumerate(companies):
                result.add(await self._crawl_one(company, profile, PHASE_BROWSER))
                if index < len(companies) - 1:
                    await self._sleep(self.settings.browser_delay_seconds)

    def submit_crawl_results(
        self,
        user_id: int,
        company_id: int,
        jobs: List[ParsedJob],
        duration: Optional[int] = None,
    ) -> CrawlResult:
        """
        Merge jobs crawled out of process (local crawler) for one company.

        Goes through the same merge and crawl log as an in-process crawl.
        """
        company = self._require_company(user_id, company_id)
        profile = self.profiles.get_profile(user_id)

        log_id = self.crawl_logs.start(company.id)
        outcome = self._merge(log_id, company, jobs, profile)
        metrics.record_crawl(CrawlStatus.SUCCESS.value, "external", outcome.jobs_found, outcome.new_jobs)
        logger.info(f"[orchestrator] {company.name}: submitted {outcome.jobs_found} jobs, {outcome.new_jobs} new")

        return CrawlResult(
            company_id=company.id,
            company_name=company.name,
            status=CrawlStatus.SUCCESS,
            jobs_found=outcome.jobs_found,
            new_jobs=outcome.new_jobs,
            duration_ms=duration,
        )

    def get_crawl_logs(self, user_id: int, company_id: Optional[int] = None, limit: int = 20) -> List[CrawlLog]:
        return self.crawl_logs.list_logs(user_id, company_id=company_id, limit=limit)

    def recalculate_match_scores(self, user_id: int) -> int:
        """Rescore every listing of ``user_id`` against the current profile. Returns the number changed."""
        profile = self.profiles.get_profile(user_id)
        updated = 0

        for batch in self.listings.iter_scoring_batches(user_id, SCORING_BATCH_SIZE):
            changed = {}
            for listing in batch:
                score = calculate_match_score(listing, profile)
                if score != listing.match_score:
                    changed[listing.id] = score
            updated += self.listings.update_match_scores(changed)

        logger.info(f"[orchestrator] user {user_id}: recalculated scores, {updated} changed")
        return updated

    def calculate_match_score_with_breakdown(self, listing, profile: Optional[JobProfile]):
        return calculate_match_score_with_breakdown(listing, profile)
