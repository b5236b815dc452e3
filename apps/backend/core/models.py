"""
Domain models for companies, job listings, crawl logs and job profiles.

Rows coming out of psycopg2 (RealDictCursor) are converted with the
``from_row`` helpers; the API layer serialises with ``to_dict``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.normalize import parse_timestamp


class AtsType(str, Enum):
    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    ASHBY = "ashby"
    SMARTRECRUITERS = "smartrecruiters"
    WORKDAY = "workday"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AtsType":
        """Map a stored ats_type value to the enum; unknown values crawl as custom pages."""
        if not value:
            return cls.CUSTOM
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.CUSTOM


class JobStatus(str, Enum):
    NEW = "new"
    VIEWED = "viewed"
    APPLIED = "applied"
    DISMISSED = "dismissed"


class CrawlStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# Status transitions a user may perform. Crawls never write status.
ALLOWED_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.NEW: frozenset({JobStatus.VIEWED, JobStatus.APPLIED, JobStatus.DISMISSED}),
    JobStatus.VIEWED: frozenset({JobStatus.APPLIED, JobStatus.DISMISSED}),
    JobStatus.APPLIED: frozenset(),
    JobStatus.DISMISSED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def source_statuses_for(target: JobStatus) -> List[str]:
    """Statuses from which ``target`` is reachable, as stored values."""
    return sorted(s.value for s, allowed in ALLOWED_TRANSITIONS.items() if target in allowed)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Company:
    id: int
    user_id: int
    name: str
    career_page_url: str
    ats_type: AtsType = AtsType.CUSTOM
    active: bool = True
    headquarters: Optional[str] = None
    founded_year: Optional[int] = None
    revenue_estimate: Optional[str] = None
    stage: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Company":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            career_page_url=row["career_page_url"],
            ats_type=AtsType.parse(row.get("ats_type")),
            active=bool(row.get("active", True)),
            headquarters=row.get("headquarters"),
            founded_year=row.get("founded_year"),
            revenue_estimate=row.get("revenue_estimate"),
            stage=row.get("stage"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "careerPageUrl": self.career_page_url,
            "atsType": self.ats_type.value,
            "active": self.active,
            "headquarters": self.headquarters,
            "foundedYear": self.founded_year,
            "revenueEstimate": self.revenue_estimate,
            "stage": self.stage,
        }


@dataclass
class ParsedJob:
    """Normalized, vendor-agnostic job produced by a parser or the browser crawler."""
    external_id: str
    title: str
    url: str
    location: Optional[str] = None
    remote: bool = False
    department: Optional[str] = None
    description: Optional[str] = None
    posted_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "externalId": self.external_id,
            "title": self.title,
            "url": self.url,
            "location": self.location,
            "remote": self.remote,
            "department": self.department,
            "description": self.description,
            "postedAt": _iso(self.posted_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedJob":
        return cls(
            external_id=str(data["externalId"]),
            title=data["title"],
            url=data["url"],
            location=data.get("location"),
            remote=bool(data.get("remote", False)),
            department=data.get("department"),
            description=data.get("description"),
            posted_at=parse_timestamp(data.get("postedAt")),
        )


@dataclass
class JobListing:
    id: int
    company_id: int
    external_id: str
    title: str
    url: str
    location: Optional[str]
    remote: bool
    department: Optional[str]
    description: Optional[str]
    posted_at: Optional[datetime]
    first_seen_at: datetime
    last_seen_at: datetime
    status: JobStatus = JobStatus.NEW
    match_score: Optional[float] = None
    company_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobListing":
        return cls(
            id=row["id"],
            company_id=row["company_id"],
            external_id=row["external_id"],
            title=row["title"],
            url=row["url"],
            location=row.get("location"),
            remote=bool(row.get("remote", False)),
            department=row.get("department"),
            description=row.get("description"),
            posted_at=row.get("posted_at"),
            first_seen_at=row["first_seen_at"],
            last_seen_at=row["last_seen_at"],
            status=JobStatus(row.get("status", "new")),
            match_score=row.get("match_score"),
            company_name=row.get("company_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "companyName": self.company_name,
            "externalId": self.external_id,
            "title": self.title,
            "url": self.url,
            "location": self.location,
            "remote": self.remote,
            "department": self.department,
            "description": self.description,
            "postedAt": _iso(self.posted_at),
            "firstSeenAt": _iso(self.first_seen_at),
            "lastSeenAt": _iso(self.last_seen_at),
            "status": self.status.value,
            "matchScore": self.match_score,
        }


@dataclass
class CrawlLog:
    id: int
    company_id: int
    started_at: datetime
    status: CrawlStatus = CrawlStatus.RUNNING
    completed_at: Optional[datetime] = None
    jobs_found: int = 0
    new_jobs: int = 0
    error: Optional[str] = None
    company_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CrawlLog":
        return cls(
            id=row["id"],
            company_id=row["company_id"],
            started_at=row["started_at"],
            status=CrawlStatus(row["status"]),
            completed_at=row.get("completed_at"),
            jobs_found=row.get("jobs_found") or 0,
            new_jobs=row.get("new_jobs") or 0,
            error=row.get("error"),
            company_name=row.get("company_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "companyId": self.company_id,
            "companyName": self.company_name,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "status": self.status.value,
            "jobsFound": self.jobs_found,
            "newJobs": self.new_jobs,
            "error": self.error,
        }


@dataclass
class JobProfile:
    user_id: int
    keywords: List[str] = field(default_factory=list)
    titles: List[str] = field(default_factory=list)
    locations: List[str] = field(default_factory=list)
    excluded_locations: List[str] = field(default_factory=list)
    remote_only: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobProfile":
        return cls(
            user_id=row["user_id"],
            keywords=list(row.get("keywords") or []),
            titles=list(row.get("titles") or []),
            locations=list(row.get("locations") or []),
            excluded_locations=list(row.get("excluded_locations") or []),
            remote_only=bool(row.get("remote_only", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywords": self.keywords,
            "titles": self.titles,
            "locations": self.locations,
            "excludedLocations": self.excluded_locations,
            "remoteOnly": self.remote_only,
        }


@dataclass
class CrawlResult:
    company_id: int
    company_name: str
    status: CrawlStatus
    jobs_found: int = 0
    new_jobs: int = 0
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companyId": self.company_id,
            "companyName": self.company_name,
            "status": self.status.value,
            "jobsFound": self.jobs_found,
            "newJobs": self.new_jobs,
            "error": self.error,
            "duration": self.duration_ms,
        }


@dataclass
class CrawlAllResult:
    results: List[CrawlResult] = field(default_factory=list)
    total_jobs_found: int = 0
    new_jobs_found: int = 0
    skipped_company_ids: List[int] = field(default_factory=list)

    @property
    def failures(self) -> List[CrawlResult]:
        return [r for r in self.results if r.status == CrawlStatus.FAILED]

    def add(self, result: CrawlResult) -> None:
        self.results.append(result)
        if result.status == CrawlStatus.SUCCESS:
            self.total_jobs_found += result.jobs_found
            self.new_jobs_found += result.new_jobs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companiesCrawled": len(self.results),
            "totalJobsFound": self.total_jobs_found,
            "newJobsFound": self.new_jobs_found,
            "results": [r.to_dict() for r in self.results],
            "failures": [
                {"companyId": r.company_id, "companyName": r.company_name, "error": r.error}
                for r in self.failures
            ],
            "skippedCompanyIds": self.skipped_company_ids,
        }
