"""
Parser for career pages that have no usable public API.

SmartRecruiters, Workday and custom pages are all rendered in the headless
browser and scraped; no token is needed.
"""
from typing import List

from core.models import ParsedJob
from crawler.browser_crawler import BrowserCrawler
from .base import AtsParser


class BrowserPageParser(AtsParser):
    name = "custom"
    display_name = "Career page"
    requires_browser = True

    def __init__(self, crawler: BrowserCrawler, name: str = "custom"):
        self.name = name
        super().__init__()
        self.crawler = crawler

    def extract_token(self, career_url: str):
        return career_url or None

    async def parse(self, career_url: str) -> List[ParsedJob]:
        return await self.crawler.crawl(career_url)
