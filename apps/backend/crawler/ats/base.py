"""
Base parser interface for ATS job boards.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Pattern

from core.errors import TokenExtractionError, VendorApiError
from core.models import ParsedJob
from core.net import HTTPClient

logger = logging.getLogger(__name__)


class AtsParser(ABC):
    """
    Base class for ATS parsers.

    Subclasses declare ``token_patterns``: regexes tried in order against the
    career page URL, the first capture group of the first match being the
    board token.
    """

    name: str = "base"
    display_name: str = "ATS"
    token_patterns: List[Pattern] = []
    requires_browser: bool = False

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def extract_token(self, career_url: str) -> Optional[str]:
        for pattern in self.token_patterns:
            match = pattern.search(career_url or "")
            if match and match.group(1):
                return match.group(1)
        return None

    def require_token(self, career_url: str) -> str:
        token = self.extract_token(career_url)
        if not token:
            raise TokenExtractionError(self.display_name, career_url)
        return token

    @abstractmethod
    async def parse(self, career_url: str) -> List[ParsedJob]:
        """Fetch and normalize every open job behind ``career_url``."""

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name})>"


class ApiAtsParser(AtsParser):
    """
    Parser for vendors exposing a public JSON job-board API.

    Subclasses provide the API URL for a token, the vendor wording for a
    missing board and the mapping from the vendor payload to ParsedJob.
    """

    not_found_noun: str = "board"

    def __init__(self, http: Optional[HTTPClient] = None):
        super().__init__()
        self.http = http or HTTPClient()

    @abstractmethod
    def api_url(self, token: str) -> str:
        pass

    @abstractmethod
    def map_jobs(self, data: Any) -> List[ParsedJob]:
        pass

    async def parse(self, career_url: str) -> List[ParsedJob]:
        token = self.require_token(career_url)
        response = await self.http.get_json(self.api_url(token))

        if not response.ok:
            if response.status_code == 404:
                raise VendorApiError(f"{self.display_name} {self.not_found_noun} not found: {token}", 404)
            raise VendorApiError(
                f"{self.display_name} API error: {response.status_code} {response.reason}",
                response.status_code,
            )

        jobs = self.map_jobs(response.body)
        self.logger.info(f"[{self.name}] {token}: parsed {len(jobs)} jobs")
        return jobs


def compile_patterns(*patterns: str) -> List[Pattern]:
    return [re.compile(p, re.I) for p in patterns]
