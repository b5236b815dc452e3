"""
Ashby job-board parser.
API docs: https://developers.ashbyhq.com/docs/public-job-posting-api
"""
from typing import Any, List

from core.models import ParsedJob
from core.normalize import is_remote_location, parse_timestamp, strip_html
from .base import ApiAtsParser, compile_patterns

ASHBY_API_BASE = "https://api.ashbyhq.com/posting-api/job-board"


class AshbyParser(ApiAtsParser):
    name = "ashby"
    display_name = "Ashby"
    not_found_noun = "company"
    token_patterns = compile_patterns(
        r"api\.ashbyhq\.com/posting-api/job-board/([^/?#]+)",
        r"jobs\.ashbyhq\.com/([^/?#]+)",
        r"jobs\.ashby\.com/([^/?#]+)",
    )

    def api_url(self, token: str) -> str:
        return f"{ASHBY_API_BASE}/{token}"

    def map_jobs(self, data: Any) -> List[ParsedJob]:
        jobs = []
        for job in (data or {}).get("jobs", []):
            location = job.get("location")
            jobs.append(ParsedJob(
                external_id=str(job["id"]),
                title=job.get("title", "").strip(),
                url=job.get("jobUrl", ""),
                location=location,
                remote=bool(job.get("isRemote")) or is_remote_location(location),
                department=job.get("department") or job.get("team"),
                description=job.get("descriptionPlain") or strip_html(job.get("description")),
                posted_at=parse_timestamp(job.get("publishedDate")),
            ))
        return jobs
