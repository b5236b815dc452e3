"""
Read access to companies and read/write access to job profiles.

Company CRUD belongs to another service; the crawler only reads them.
"""
import logging
from typing import List, Optional

from core.models import Company, JobProfile
from .db import PgStore

logger = logging.getLogger(__name__)


class CompanyStore(PgStore):

    def get_company(self, user_id: int, company_id: int) -> Optional[Company]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM companies WHERE id = %s AND user_id = %s",
                (company_id, user_id),
            )
            row = cursor.fetchone()
        return Company.from_row(row) if row else None

    def list_companies(self, user_id: int, active_only: bool = False) -> List[Company]:
        query = "SELECT * FROM companies WHERE user_id = %s"
        if active_only:
            query += " AND active = TRUE"
        query += " ORDER BY name ASC"
        with self._cursor() as cursor:
            cursor.execute(query, (user_id,))
            return [Company.from_row(r) for r in cursor.fetchall()]

    def list_active(self, user_id: int) -> List[Company]:
        return self.list_companies(user_id, active_only=True)


class JobProfileStore(PgStore):

    def get_profile(self, user_id: int) -> Optional[JobProfile]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM job_profiles WHERE user_id = %s", (user_id,))
            row = cursor.fetchone()
        return JobProfile.from_row(row) if row else None

    def upsert_profile(self, profile: JobProfile) -> JobProfile:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO job_profiles (user_id, keywords, titles, locations, excluded_locations, remote_only)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (user_id) DO UPDATE SET
                    keywords = EXCLUDED.keywords,
                    titles = EXCLUDED.titles,
                    locations = EXCLUDED.locations,
                    excluded_locations = EXCLUDED.excluded_locations,
                    remote_only = EXCLUDED.remote_only
                RETURNING *
                """,
                (profile.user_id, profile.keywords, profile.titles, profile.locations,
                 profile.excluded_locations, profile.remote_only),
            )
            row = cursor.fetchone()
        logger.info(f"[store] Saved job profile for user {profile.user_id}")
        return JobProfile.from_row(row)
