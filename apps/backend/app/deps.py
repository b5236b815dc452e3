"""
FastAPI dependencies: the requesting user and process-wide crawl services.

Authentication happens upstream; the gateway forwards the authenticated
user id in the X-User-Id header.
"""
from functools import lru_cache

from fastapi import Header, HTTPException

from app.config import CrawlSettings
from crawler.ats import ParserRegistry
from crawler.browser_crawler import BrowserManager
from orchestrator import CrawlOrchestrator
from pipeline.company_store import CompanyStore, JobProfileStore
from pipeline.crawl_logs import CrawlLogStore
from pipeline.listing_store import JobListingStore


def get_user_id(x_user_id: str = Header(None)) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")


@lru_cache()
def get_settings() -> CrawlSettings:
    return CrawlSettings.from_env()


@lru_cache()
def get_listing_store() -> JobListingStore:
    return JobListingStore()


@lru_cache()
def get_company_store() -> CompanyStore:
    return CompanyStore()


@lru_cache()
def get_profile_store() -> JobProfileStore:
    return JobProfileStore()


@lru_cache()
def get_browser_manager() -> BrowserManager:
    return BrowserManager(recycle_after=get_settings().browser_restart_interval)


@lru_cache()
def get_orchestrator() -> CrawlOrchestrator:
    settings = get_settings()
    browser_manager = get_browser_manager()
    return CrawlOrchestrator(
        companies=get_company_store(),
        listings=get_listing_store(),
        crawl_logs=CrawlLogStore(),
        profiles=get_profile_store(),
        registry=ParserRegistry.default(browser_manager, settings),
        browser_manager=browser_manager,
        settings=settings,
    )

