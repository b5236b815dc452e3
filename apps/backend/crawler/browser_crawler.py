"""
Browser-based crawler using Playwright for JavaScript-heavy career pages.

One headless Chromium is shared across companies by BrowserManager and
recycled every ``recycle_after`` crawls to bound memory growth.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

import metrics
from app.config import CrawlSettings
from core.errors import NavigationError
from core.models import ParsedJob
from pipeline.heuristics import extract_jobs_from_dom
from pipeline.jsonld import extract_job_postings

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
    '--disable-extensions',
    '--disable-background-networking',
    '--disable-default-apps',
    '--disable-sync',
    '--hide-scrollbars',
    '--mute-audio',
    '--no-first-run',
    '--js-flags=--max-old-space-size=256',
]

LOAD_MORE_SELECTORS = [
    'button:has-text("Load More")',
    'button:has-text("Show More")',
    'button:has-text("View All")',
    'a:has-text("Load More")',
    'a:has-text("Show More")',
    '.load-more',
    '.show-more',
]

SCROLL_PAUSE_MS = 500


class ChromiumBrowser:
    """A launched Chromium plus the Playwright driver that owns it."""

    def __init__(self, playwright, browser):
        self._playwright = playwright
        self._browser = browser

    async def new_page(self) -> Page:
        return await self._browser.new_page()

    async def close(self):
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


async def launch_chromium() -> ChromiumBrowser:
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)
    except PlaywrightError:
        await playwright.stop()
        raise
    return ChromiumBrowser(playwright, browser)


class BrowserManager:
    """
    Lazily launches a browser and recycles it after N released crawls.

    ``acquire()`` returns the live browser, launching one if needed.
    ``release()`` must follow every acquire, successful or not; once the
    crawl count reaches ``recycle_after`` the browser is closed and the next
    acquire launches a fresh one.

    In-process callers crawl inside ``session()``, which holds the browser
    for one caller at a time and closes it when that caller is done.
    """

    def __init__(
        self,
        launcher: Callable[[], Awaitable] = launch_chromium,
        recycle_after: int = 5,
    ):
        self._launcher = launcher
        self._recycle_after = max(1, recycle_after)
        self._browser = None
        self._crawls_since_launch = 0
        self._session_lock = asyncio.Lock()
        self.launches = 0
        self.recycles = 0

    @asynccontextmanager
    async def session(self):
        """Exclusive use of the browser; waits while another session is open."""
        async with self._session_lock:
            try:
                yield self
            finally:
                await self.close()

    @property
    def recycle_after(self) -> int:
        return self._recycle_after

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def acquire(self):
        if self._browser is None:
            logger.info("[browser] Launching headless browser")
            self._browser = await self._launcher()
            self._crawls_since_launch = 0
            self.launches += 1
            metrics.record_browser_launch()
        return self._browser

    async def release(self):
        self._crawls_since_launch += 1
        if self._crawls_since_launch >= self._recycle_after:
            logger.info(f"[browser] Recycling browser after {self._crawls_since_launch} crawls")
            await self.close()
            self.recycles += 1
            metrics.record_browser_recycle()

    async def close(self):
        browser, self._browser = self._browser, None
        self._crawls_since_launch = 0
        if browser is None:
            return
        try:
            await browser.close()
        except PlaywrightError as e:
            # Already gone (crashed or disconnected)
            logger.debug(f"[browser] Error closing browser: {e}")


class BrowserCrawler:
    """Render a career page and extract its job listings."""

    def __init__(self, manager: BrowserManager, settings: Optional[CrawlSettings] = None):
        self.manager = manager
        self.settings = settings or CrawlSettings()

    async def crawl(self, url: str) -> List[ParsedJob]:
        """
        Crawl one career page.

        Raises:
            NavigationError: the page could not be loaded
        """
        browser = await self.manager.acquire()
        try:
            html = await self._render(browser, url)
        finally:
            await self.manager.release()

        jobs = extract_from_html(html, url)
        if not jobs:
            logger.warning(f"[browser] No jobs found on {url}")
        return jobs

    async def _render(self, browser, url: str) -> str:
        page = await browser.new_page()
        try:
            try:
                await page.goto(url, wait_until='networkidle', timeout=self.settings.navigation_timeout_ms)
            except PlaywrightError as e:
                raise NavigationError(url, str(e)) from e

            await page.wait_for_timeout(self.settings.settle_ms)
            await self.expand_content(page)
            return await page.content()
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.debug(f"[browser] Error closing page for {url}: {e}")

    async def expand_content(self, page: Page):
        """Best effort: click visible "load more" controls, then scroll a bounded number of times."""
        for selector in LOAD_MORE_SELECTORS:
            try:
                button = page.locator(selector).first
                await button.click(timeout=self.settings.load_more_timeout_ms)
                await page.wait_for_timeout(self.settings.settle_ms)
            except PlaywrightError as e:
                logger.debug(f"[browser] No clickable '{selector}': {e}")

        try:
            for _ in range(self.settings.max_scrolls):
                await page.evaluate('window.scrollBy(0, document.documentElement.clientHeight)')
                await page.wait_for_timeout(SCROLL_PAUSE_MS)
        except PlaywrightError as e:
            logger.debug(f"[browser] Scrolling failed: {e}")


def extract_from_html(html: str, base_url: str) -> List[ParsedJob]:
    """JSON-LD JobPosting data first, DOM heuristics when the page has none."""
    soup = BeautifulSoup(html or '', 'lxml')
    jobs = extract_job_postings(soup, base_url)
    if jobs:
        return jobs
    return extract_jobs_from_dom(soup, base_url)
