"""
HTTP client for vendor job-board APIs.

Requests to the same vendor host are bounded by a per-host semaphore so a
bulk API phase never floods one vendor. No retries happen here: a failed
request fails that company's crawl and the caller decides whether to retry.
"""
import os
import time
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_UA = "JobRadarBot/1.0 (+https://jobradar.app/bot)"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PER_HOST_CONCURRENCY = 2


class HTTPResponse:
    """Status, reason and decoded body of a vendor API call."""

    def __init__(self, status_code: int, reason: str, body: Any):
        self.status_code = status_code
        self.reason = reason
        self.body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def __repr__(self):
        return f"HTTPResponse(status={self.status_code})"


class HTTPClient:
    """Async JSON client with per-host concurrency limits."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        per_host_concurrency: int = DEFAULT_PER_HOST_CONCURRENCY,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent or os.getenv("JOBRADAR_CRAWLER_UA", DEFAULT_UA)
        self.timeout = httpx.Timeout(timeout)
        self.per_host_concurrency = max(1, per_host_concurrency)
        self._transport = transport
        # Per-host semaphores (host -> Semaphore)
        self._host_limits: Dict[str, asyncio.Semaphore] = {}

    def _host_limit(self, url: str) -> asyncio.Semaphore:
        host = urlparse(url).netloc or "default"
        if host not in self._host_limits:
            self._host_limits[host] = asyncio.Semaphore(self.per_host_concurrency)
        return self._host_limits[host]

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """
        GET a JSON document.

        Returns an HTTPResponse whose body is the decoded JSON on 2xx and the
        response text otherwise. Transport errors (timeouts, connection
        failures) propagate to the caller.
        """
        async with self._host_limit(url):
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                start_time = time.time()
                try:
                    response = await client.get(url, params=params, headers=self._headers(headers))
                except httpx.TimeoutException as e:
                    logger.error(f"[net] Timeout fetching {url}: {e}")
                    raise
                except httpx.HTTPError as e:
                    logger.error(f"[net] Request error fetching {url}: {e}")
                    raise

                elapsed_ms = int((time.time() - start_time) * 1000)
                logger.info(f"[net] GET {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")

                if response.is_success:
                    body = response.json()
                else:
                    body = response.text
                return HTTPResponse(response.status_code, response.reason_phrase, body)
