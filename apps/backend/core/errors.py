"""
Crawl error taxonomy.

Everything raised for a single company derives from CrawlError and is caught
at the orchestrator boundary, except StoreError which propagates.
"""
from typing import Optional


class CrawlError(Exception):
    """Base class for per-company crawl failures."""


class TokenExtractionError(CrawlError):
    """Career page URL matches none of the vendor's known patterns."""

    def __init__(self, vendor: str, url: str):
        self.vendor = vendor
        self.url = url
        super().__init__(f"Could not extract {vendor} token from URL: {url}")


class VendorApiError(CrawlError):
    """Vendor API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NavigationError(CrawlError):
    """Headless browser could not load the career page."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Navigation failed for {url}: {reason}")


class StoreError(Exception):
    """Persistence failure while reading or writing crawl data."""


class CrawlInProgressError(Exception):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("A crawl operation is already in progress. Please wait and try again.")


class CompanyNotFoundError(Exception):
    def __init__(self, company_id: int):
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class InvalidStatusTransition(Exception):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change job status from '{current}' to '{target}'")
