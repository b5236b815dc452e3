"""
Crawl log persistence: one row per company crawl attempt.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from core.models import CrawlLog, CrawlStatus
from .db import PgStore

logger = logging.getLogger(__name__)

STALE_CRAWL_ERROR = "Crawl timed out or server restarted"


class CrawlLogStore(PgStore):

    def start(self, company_id: int) -> int:
        """Open a ``running`` log row and return its id."""
        with self._cursor() as cursor:
            cursor.execute(
                "INSERT INTO crawl_logs (company_id, started_at, status) VALUES (%s, %s, %s) RETURNING id",
                (company_id, datetime.now(timezone.utc), CrawlStatus.RUNNING.value),
            )
            return cursor.fetchone()["id"]

    def complete(
        self,
        log_id: int,
        status: CrawlStatus,
        jobs_found: int = 0,
        new_jobs: int = 0,
        error: Optional[str] = None,
    ):
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE crawl_logs
                SET completed_at = %s, status = %s, jobs_found = %s, new_jobs = %s, error = %s
                WHERE id = %s
                """,
                (datetime.now(timezone.utc), status.value, jobs_found, new_jobs, error, log_id),
            )

    def list_logs(self, user_id: int, company_id: Optional[int] = None, limit: int = 20) -> List[CrawlLog]:
        """Most recent logs first, restricted to companies owned by ``user_id``."""
        query = """
            SELECT cl.*, c.name AS company_name
            FROM crawl_logs cl JOIN companies c ON c.id = cl.company_id
            WHERE c.user_id = %s
        """
        params: list = [user_id]
        if company_id is not None:
            query += " AND cl.company_id = %s"
            params.append(company_id)
        query += " ORDER BY cl.started_at DESC LIMIT %s"
        params.append(limit)

        with self._cursor() as cursor:
            cursor.execute(query, params)
            return [CrawlLog.from_row(r) for r in cursor.fetchall()]

    def fail_stale(self, user_id: int, older_than_minutes: int = 5) -> int:
        """
        Mark ``user_id``'s ``running`` logs older than the cutoff as failed
        (crashed or restarted crawls). Other users' crawls are left alone.
        """
        now = datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=older_than_minutes)
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE crawl_logs cl SET status = %s, completed_at = %s, error = %s
                FROM companies c
                WHERE c.id = cl.company_id AND c.user_id = %s
                  AND cl.status = %s AND cl.started_at < %s
                """,
                (CrawlStatus.FAILED.value, now, STALE_CRAWL_ERROR,
                 user_id, CrawlStatus.RUNNING.value, cutoff),
            )
            count = cursor.rowcount
        if count:
            logger.warning(f"[store] Marked {count} stuck crawl logs of user {user_id} as failed")
        return count
