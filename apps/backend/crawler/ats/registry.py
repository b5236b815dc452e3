"""
Parser registry: maps a company's ATS type to the parser that crawls it.
"""
import logging
from typing import Dict, Optional

from app.config import CrawlSettings
from core.models import AtsType
from core.net import HTTPClient
from crawler.browser_crawler import BrowserCrawler, BrowserManager
from .ashby import AshbyParser
from .base import AtsParser
from .browser_page import BrowserPageParser
from .greenhouse import GreenhouseParser
from .lever import LeverParser

logger = logging.getLogger(__name__)

API_ATS_TYPES = frozenset({AtsType.GREENHOUSE, AtsType.LEVER, AtsType.ASHBY})
BROWSER_ATS_TYPES = frozenset({AtsType.SMARTRECRUITERS, AtsType.WORKDAY, AtsType.CUSTOM})


class ParserRegistry:
    """Registry for ATS parsers, keyed by AtsType."""

    def __init__(self):
        self._parsers: Dict[AtsType, AtsParser] = {}

    def register(self, ats_type: AtsType, parser: AtsParser):
        self._parsers[ats_type] = parser
        logger.debug(f"[registry] {ats_type.value} -> {parser}")

    def get(self, ats_type: Optional[AtsType]) -> AtsParser:
        """Parser for ``ats_type``; missing or unregistered types use the custom page parser."""
        parser = self._parsers.get(ats_type) if ats_type else None
        if parser is None:
            parser = self._parsers[AtsType.CUSTOM]
        return parser

    def requires_browser(self, ats_type: Optional[AtsType]) -> bool:
        return self.get(ats_type).requires_browser

    @classmethod
    def default(
        cls,
        browser_manager: BrowserManager,
        settings: Optional[CrawlSettings] = None,
        http: Optional[HTTPClient] = None,
    ) -> "ParserRegistry":
        settings = settings or CrawlSettings()
        http = http or HTTPClient(
            timeout=settings.http_timeout_seconds,
            per_host_concurrency=settings.per_vendor_concurrency,
        )
        crawler = BrowserCrawler(browser_manager, settings)

        registry = cls()
        registry.register(AtsType.GREENHOUSE, GreenhouseParser(http))
        registry.register(AtsType.LEVER, LeverParser(http))
        registry.register(AtsType.ASHBY, AshbyParser(http))
        for ats_type in BROWSER_ATS_TYPES:
            registry.register(ats_type, BrowserPageParser(crawler, name=ats_type.value))
        return registry
