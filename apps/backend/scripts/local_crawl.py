#!/usr/bin/env python3
"""
Local job crawler.

Runs the headless-browser crawl on this machine instead of on the API host
(where Chromium may not fit in memory). Pulls the company list from the API,
crawls the browser-only career pages locally and posts each result back to
the submit endpoint, which applies the same merge as an in-process crawl.

Usage:
    python scripts/local_crawl.py
    python scripts/local_crawl.py --company 123
    python scripts/local_crawl.py --limit 10

Environment:
    JOBRADAR_API_URL  API base URL (default http://localhost:8000)
    JOBRADAR_API_KEY  API key sent as X-API-Key (required)
    JOBRADAR_USER_ID  User whose companies are crawled (required)
"""
import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import CrawlSettings  # noqa: E402
from core.models import AtsType, ParsedJob  # noqa: E402
from crawler.ats import BROWSER_ATS_TYPES  # noqa: E402
from crawler.browser_crawler import BrowserCrawler, BrowserManager  # noqa: E402

logger = logging.getLogger("local_crawl")

DEFAULT_API_URL = "http://localhost:8000"
MAX_RETRIES = 3

RETRYABLE = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


class ApiError(Exception):
    pass


class JobRadarClient:
    """Minimal client for the crawl API."""

    def __init__(self, base_url: str, api_key: str, user_id: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"X-API-Key": api_key, "X-User-Id": str(user_id), "Content-Type": "application/json"},
            timeout=httpx.Timeout(60.0),
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RETRYABLE),
        reraise=True,
    )
    async def _request(self, method: str, path: str, json: Optional[Dict] = None) -> Any:
        response = await self._client.request(method, path, json=json)
        if response.is_error:
            raise ApiError(f"API request failed: {response.status_code} {response.text}")
        return response.json()["data"]

    async def get_companies(self) -> List[Dict]:
        data = await self._request("GET", "/api/jobs/companies")
        return data["companies"]

    async def submit_results(self, company_id: int, jobs: List[ParsedJob], duration_ms: int) -> Dict:
        data = await self._request(
            "POST",
            f"/api/jobs/crawl/{company_id}/results",
            json={"jobs": [job.to_dict() for job in jobs], "duration": duration_ms},
        )
        return data["result"]


def select_companies(companies: List[Dict], company_id: Optional[int], limit: Optional[int]) -> List[Dict]:
    """Active companies needing the browser, optionally narrowed to one id and capped at ``limit``."""
    selected = [
        c for c in companies
        if c.get("active", True) and AtsType.parse(c.get("atsType")) in BROWSER_ATS_TYPES
    ]
    if company_id is not None:
        selected = [c for c in selected if c["id"] == company_id]
    if limit is not None:
        selected = selected[:limit]
    return selected


async def run(client: JobRadarClient, crawler: BrowserCrawler, companies: List[Dict], delay: float) -> List[Dict]:
    results = []
    for index, company in enumerate(companies, start=1):
        logger.info(f"[{index}/{len(companies)}] {company['name']} ({company.get('atsType') or 'custom'})")
        start = time.monotonic()
        try:
            jobs = await crawler.crawl(company["careerPageUrl"])
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.info(f"  Found {len(jobs)} jobs in {duration_ms / 1000:.1f}s")
            result = await client.submit_results(company["id"], jobs, duration_ms)
            logger.info(f"  Saved: {result['jobsFound']} jobs ({result['newJobs']} new)")
        except (ApiError, httpx.HTTPError) as e:
            # The API is unreachable or rejecting us: nothing more can be saved
            logger.error(f"  Submit failed: {e}")
            raise
        except Exception as e:
            logger.error(f"  Error: {e}")
            result = {
                "companyId": company["id"],
                "companyName": company["name"],
                "status": "failed",
                "jobsFound": 0,
                "newJobs": 0,
                "error": str(e),
                "duration": int((time.monotonic() - start) * 1000),
            }
        results.append(result)

        if index < len(companies):
            await asyncio.sleep(delay)
    return results


def summarize(results: List[Dict]):
    succeeded = [r for r in results if r.get("status") == "success"]
    logger.info("=================")
    logger.info(f"Companies crawled: {len(results)}")
    logger.info(f"Successful: {len(succeeded)}")
    logger.info(f"Failed: {len(results) - len(succeeded)}")
    logger.info(f"Total jobs found: {sum(r['jobsFound'] for r in succeeded)}")
    logger.info(f"New jobs: {sum(r['newJobs'] for r in succeeded)}")


async def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Crawl browser-only career pages locally and push results to the API")
    parser.add_argument("--company", type=int, help="Only crawl this company id")
    parser.add_argument("--limit", type=int, help="Crawl at most this many companies")
    args = parser.parse_args(argv)

    api_url = os.getenv("JOBRADAR_API_URL", DEFAULT_API_URL)
    api_key = os.getenv("JOBRADAR_API_KEY")
    user_id = os.getenv("JOBRADAR_USER_ID")
    if not api_key or not user_id:
        logger.error("JOBRADAR_API_KEY and JOBRADAR_USER_ID environment variables are required")
        return 1

    settings = CrawlSettings.from_env()
    client = JobRadarClient(api_url, api_key, user_id)
    manager = BrowserManager(recycle_after=settings.browser_restart_interval)
    crawler = BrowserCrawler(manager, settings)

    logger.info(f"Local job crawler, API: {api_url}")
    try:
        async with manager.session():
            companies = select_companies(await client.get_companies(), args.company, args.limit)
            if args.company is not None and not companies:
                logger.error(f"Company {args.company} not found or not a browser-based ATS")
                return 1
            logger.info(f"Found {len(companies)} companies requiring browser crawl")

            results = await run(client, crawler, companies, settings.browser_delay_seconds)
        summarize(results)
    finally:
        await client.close()
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format="%(message)s")
    sys.exit(asyncio.run(main()))
