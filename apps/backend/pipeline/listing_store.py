"""
Job listing persistence.

Crawled jobs are merged into ``job_listings`` keyed by (company_id,
external_id). A merge inserts unseen jobs with status ``new`` and refreshes
the content of known ones; it never touches ``status`` or
``first_seen_at``, which belong to the user.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from core.errors import InvalidStatusTransition
from core.models import JobListing, JobStatus, ParsedJob, can_transition, source_statuses_for
from .db import PgStore

logger = logging.getLogger(__name__)

Scorer = Callable[[ParsedJob], Optional[int]]

SCORING_BATCH_SIZE = 100

LISTING_COLUMNS = """
    l.id, l.company_id, l.external_id, l.title, l.url, l.location, l.remote,
    l.department, l.description, l.posted_at, l.first_seen_at, l.last_seen_at,
    l.status, l.match_score, c.name AS company_name
"""


@dataclass
class MergePlan:
    """What a merge will do: (job, score) pairs to insert and to refresh."""
    jobs_found: int
    inserts: List[Tuple[ParsedJob, Optional[int]]] = field(default_factory=list)
    updates: List[Tuple[ParsedJob, Optional[int]]] = field(default_factory=list)

    @property
    def new_jobs(self) -> int:
        return len(self.inserts)


@dataclass
class MergeOutcome:
    jobs_found: int
    new_jobs: int


def plan_merge(jobs: Iterable[ParsedJob], existing_ids: Set[str], scorer: Scorer) -> MergePlan:
    """
    Split a crawl batch into inserts and updates.

    Jobs repeating an external id within the batch collapse into the last
    one seen. ``jobs_found`` still counts every job the parser returned.
    """
    jobs = list(jobs)
    latest: Dict[str, ParsedJob] = {}
    for job in jobs:
        # Re-inserting moves the key to the end: last observation wins
        latest.pop(job.external_id, None)
        latest[job.external_id] = job

    plan = MergePlan(jobs_found=len(jobs))
    for external_id, job in latest.items():
        entry = (job, scorer(job))
        if external_id in existing_ids:
            plan.updates.append(entry)
        else:
            plan.inserts.append(entry)
    return plan


def _job_params(company_id: int, job: ParsedJob, score: Optional[int], now: datetime) -> Dict:
    return {
        "company_id": company_id,
        "external_id": job.external_id,
        "title": job.title,
        "url": job.url,
        "location": job.location,
        "remote": job.remote,
        "department": job.department,
        "description": job.description,
        "posted_at": job.posted_at,
        "now": now,
        "match_score": score,
    }


# The conflict branch only fires when another writer inserted the same job
# between planning and writing; it applies the regular refresh.
INSERT_SQL = """
    INSERT INTO job_listings (
        company_id, external_id, title, url, location, remote, department,
        description, posted_at, first_seen_at, last_seen_at, status, match_score
    ) VALUES (
        %(company_id)s, %(external_id)s, %(title)s, %(url)s, %(location)s, %(remote)s,
        %(department)s, %(description)s, %(posted_at)s, %(now)s, %(now)s, 'new', %(match_score)s
    )
    ON CONFLICT (company_id, external_id) DO UPDATE SET
        title = EXCLUDED.title,
        url = EXCLUDED.url,
        location = EXCLUDED.location,
        remote = EXCLUDED.remote,
        department = EXCLUDED.department,
        description = EXCLUDED.description,
        posted_at = EXCLUDED.posted_at,
        last_seen_at = EXCLUDED.last_seen_at,
        match_score = EXCLUDED.match_score
"""

UPDATE_SQL = """
    UPDATE job_listings SET
        title = %(title)s,
        url = %(url)s,
        location = %(location)s,
        remote = %(remote)s,
        department = %(department)s,
        description = %(description)s,
        posted_at = %(posted_at)s,
        last_seen_at = %(now)s,
        match_score = %(match_score)s
    WHERE company_id = %(company_id)s AND external_id = %(external_id)s
"""


class JobListingStore(PgStore):
    """psycopg2-backed store for job listings."""

    def merge_jobs(self, company_id: int, jobs: List[ParsedJob], scorer: Scorer) -> MergeOutcome:
        """
        Upsert a crawl batch for one company.

        Args:
            company_id: Owning company
            jobs: Parsed jobs as returned by the parser
            scorer: Computes the match score of a job

        Returns:
            MergeOutcome with the number of jobs found and newly inserted
        """
        external_ids = list({job.external_id for job in jobs})
        now = datetime.now(timezone.utc)

        with self._cursor() as cursor:
            existing: Set[str] = set()
            if external_ids:
                cursor.execute(
                    "SELECT external_id FROM job_listings WHERE company_id = %s AND external_id = ANY(%s)",
                    (company_id, external_ids),
                )
                existing = {row["external_id"] for row in cursor.fetchall()}

            plan = plan_merge(jobs, existing, scorer)
            if plan.inserts:
                cursor.executemany(INSERT_SQL, [_job_params(company_id, j, s, now) for j, s in plan.inserts])
            if plan.updates:
                cursor.executemany(UPDATE_SQL, [_job_params(company_id, j, s, now) for j, s in plan.updates])

        logger.info(
            f"[store] company {company_id}: {plan.jobs_found} found, "
            f"{plan.new_jobs} new, {len(plan.updates)} refreshed"
        )
        return MergeOutcome(jobs_found=plan.jobs_found, new_jobs=plan.new_jobs)

    def get_listing(self, user_id: int, listing_id: int) -> Optional[JobListing]:
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                SELECT {LISTING_COLUMNS}
                FROM job_listings l JOIN companies c ON c.id = l.company_id
                WHERE l.id = %s AND c.user_id = %s
                """,
                (listing_id, user_id),
            )
            row = cursor.fetchone()
        return JobListing.from_row(row) if row else None

    def list_listings(
        self,
        user_id: int,
        company_id: Optional[int] = None,
        status: Optional[JobStatus] = None,
        min_score: Optional[float] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[JobListing], int]:
        """Listings owned by ``user_id``, best matches first. Returns (page, total)."""
        conditions = ["c.user_id = %s"]
        params: List = [user_id]
        if company_id is not None:
            conditions.append("l.company_id = %s")
            params.append(company_id)
        if status is not None:
            conditions.append("l.status = %s")
            params.append(status.value)
        if min_score is not None:
            conditions.append("l.match_score >= %s")
            params.append(min_score)
        where = " AND ".join(conditions)

        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT COUNT(*) AS total FROM job_listings l JOIN companies c ON c.id = l.company_id WHERE {where}",
                params,
            )
            total = cursor.fetchone()["total"]
            cursor.execute(
                f"""
                SELECT {LISTING_COLUMNS}
                FROM job_listings l JOIN companies c ON c.id = l.company_id
                WHERE {where}
                ORDER BY l.match_score DESC NULLS LAST, l.first_seen_at DESC
                LIMIT %s OFFSET %s
                """,
                params + [limit, offset],
            )
            rows = cursor.fetchall()
        return [JobListing.from_row(r) for r in rows], total

    def update_status(self, user_id: int, listing_id: int, status: JobStatus) -> Optional[JobListing]:
        """
        Move one listing to ``status``.

        Returns None when the listing does not exist for this user. Setting
        the current status again is a no-op.

        Raises:
            InvalidStatusTransition: the state machine forbids the move
        """
        listing = self.get_listing(user_id, listing_id)
        if listing is None:
            return None
        if listing.status == status:
            return listing
        if not can_transition(listing.status, status):
            raise InvalidStatusTransition(listing.status.value, status.value)

        with self._cursor() as cursor:
            # Guard on the observed status so a concurrent change is not overwritten
            cursor.execute(
                "UPDATE job_listings SET status = %s WHERE id = %s AND status = %s",
                (status.value, listing_id, listing.status.value),
            )
            if cursor.rowcount == 0:
                raise InvalidStatusTransition(listing.status.value, status.value)

        listing.status = status
        return listing

    def batch_update_status(self, user_id: int, listing_ids: List[int], status: JobStatus) -> int:
        """
        Move many listings to ``status`` at once.

        Only listings owned by ``user_id`` whose current status may move to
        ``status`` are changed; the rest are skipped. Returns the number
        changed.
        """
        sources = source_statuses_for(status)
        if not listing_ids or not sources:
            return 0

        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE job_listings l SET status = %s
                FROM companies c
                WHERE c.id = l.company_id
                  AND c.user_id = %s
                  AND l.id = ANY(%s)
                  AND l.status = ANY(%s)
                """,
                (status.value, user_id, list(listing_ids), sources),
            )
            updated = cursor.rowcount

        logger.info(f"[store] user {user_id}: {updated}/{len(listing_ids)} listings -> {status.value}")
        return updated

    def cleanup_dismissed(
        self,
        user_id: Optional[int] = None,
        older_than_days: int = 30,
        dry_run: bool = False,
    ) -> int:
        """
        Delete dismissed listings not seen for ``older_than_days``.

        ``user_id=None`` cleans every user. With ``dry_run`` nothing is
        deleted and the number that would be is returned.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        conditions = "l.status = 'dismissed' AND l.last_seen_at < %s"
        params: List = [cutoff]
        if user_id is not None:
            conditions += " AND c.user_id = %s"
            params.append(user_id)

        with self._cursor() as cursor:
            if dry_run:
                cursor.execute(
                    f"SELECT COUNT(*) AS n FROM job_listings l JOIN companies c ON c.id = l.company_id WHERE {conditions}",
                    params,
                )
                count = cursor.fetchone()["n"]
            else:
                cursor.execute(
                    f"DELETE FROM job_listings l USING companies c WHERE c.id = l.company_id AND {conditions}",
                    params,
                )
                count = cursor.rowcount

        verb = "would delete" if dry_run else "deleted"
        logger.info(f"[store] cleanup: {verb} {count} dismissed listings older than {older_than_days} days")
        return count

    def iter_scoring_batches(self, user_id: int, batch_size: int = SCORING_BATCH_SIZE) -> Iterator[List[JobListing]]:
        """Yield the user's listings in id order, ``batch_size`` at a time."""
        last_id = 0
        while True:
            with self._cursor() as cursor:
                cursor.execute(
                    f"""
                    SELECT {LISTING_COLUMNS}
                    FROM job_listings l JOIN companies c ON c.id = l.company_id
                    WHERE c.user_id = %s AND l.id > %s
                    ORDER BY l.id
                    LIMIT %s
                    """,
                    (user_id, last_id, batch_size),
                )
                rows = cursor.fetchall()
            if not rows:
                return
            batch = [JobListing.from_row(r) for r in rows]
            yield batch
            if len(rows) < batch_size:
                return
            last_id = batch[-1].id

    def update_match_scores(self, scores: Dict[int, int]) -> int:
        if not scores:
            return 0
        with self._cursor() as cursor:
            cursor.executemany(
                "UPDATE job_listings SET match_score = %s WHERE id = %s",
                [(score, listing_id) for listing_id, score in scores.items()],
            )
        return len(scores)

    def get_stats(self, user_id: int) -> Dict:
        week_ago = datetime.now(timezone.utc) - timedelta(days=7)
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT l.status, COUNT(*) AS n,
                       COUNT(*) FILTER (WHERE l.first_seen_at >= %s) AS recent
                FROM job_listings l JOIN companies c ON c.id = l.company_id
                WHERE c.user_id = %s
                GROUP BY l.status
                """,
                (week_ago, user_id),
            )
            rows = cursor.fetchall()

        by_status = {row["status"]: row["n"] for row in rows}
        return {
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "newSinceLastWeek": sum(row["recent"] for row in rows),
        }
