"""
Lever postings parser.
API docs: https://github.com/lever/postings-api
"""
from typing import Any, List

from core.models import ParsedJob
from core.normalize import is_remote_location, parse_timestamp, strip_html
from .base import ApiAtsParser, compile_patterns

LEVER_API_BASE = "https://api.lever.co/v0/postings"


class LeverParser(ApiAtsParser):
    name = "lever"
    display_name = "Lever"
    not_found_noun = "company"
    # The API host must be tried before the bare lever.co pattern, which
    # would otherwise capture "v0" as the token.
    token_patterns = compile_patterns(
        r"api\.lever\.co/v0/postings/([^/?#]+)",
        r"jobs\.lever\.co/([^/?#]+)",
        r"lever\.co/([^/?#]+)",
    )

    def api_url(self, token: str) -> str:
        return f"{LEVER_API_BASE}/{token}?mode=json"

    def map_jobs(self, data: Any) -> List[ParsedJob]:
        jobs = []
        for job in data or []:
            categories = job.get("categories") or {}
            location = categories.get("location")
            description = job.get("descriptionPlain") or strip_html(job.get("description"))
            jobs.append(ParsedJob(
                external_id=str(job["id"]),
                title=job.get("text", "").strip(),
                url=job.get("hostedUrl", ""),
                location=location,
                remote=job.get("workplaceType") == "remote" or is_remote_location(location),
                department=categories.get("department") or categories.get("team"),
                description=description,
                posted_at=parse_timestamp(job.get("createdAt")),
            ))
        return jobs
