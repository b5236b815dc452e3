"""
Greenhouse job-board parser.
API docs: https://developers.greenhouse.io/job-board.html
"""
from typing import Any, List

from core.models import ParsedJob
from core.normalize import is_remote_location, parse_timestamp, strip_html
from .base import ApiAtsParser, compile_patterns

GREENHOUSE_API_BASE = "https://boards-api.greenhouse.io/v1/boards"


class GreenhouseParser(ApiAtsParser):
    name = "greenhouse"
    display_name = "Greenhouse"
    not_found_noun = "board"
    token_patterns = compile_patterns(
        r"greenhouse\.io/embed/job_board\?(?:.*&)?for=([^&#]+)",
        r"boards-api\.greenhouse\.io/v1/boards/([^/?#]+)",
        r"job-boards\.greenhouse\.io/([^/?#]+)",
        r"boards\.greenhouse\.io/([^/?#]+)",
        r"greenhouse\.io/company/([^/?#]+)",
    )

    def api_url(self, token: str) -> str:
        return f"{GREENHOUSE_API_BASE}/{token}/jobs?content=true"

    def map_jobs(self, data: Any) -> List[ParsedJob]:
        jobs = []
        for job in (data or {}).get("jobs", []):
            location = (job.get("location") or {}).get("name")
            departments = job.get("departments") or []
            jobs.append(ParsedJob(
                external_id=str(job["id"]),
                title=job.get("title", "").strip(),
                url=job.get("absolute_url", ""),
                location=location,
                remote=is_remote_location(location),
                department=departments[0].get("name") if departments else None,
                description=strip_html(job.get("content")),
                posted_at=parse_timestamp(job.get("updated_at")),
            ))
        return jobs
