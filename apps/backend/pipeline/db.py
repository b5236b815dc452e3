"""
Shared psycopg2 plumbing for the stores.

Each operation opens its own connection, commits on success and rolls back
on failure. psycopg2 errors surface as StoreError.
"""
import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from app.db_config import db_config
from core.errors import StoreError

logger = logging.getLogger(__name__)


class PgStore:
    """Base class for stores backed by PostgreSQL."""

    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url

    def _get_db_conn(self):
        """Get database connection."""
        try:
            if self.db_url:
                return psycopg2.connect(self.db_url, connect_timeout=5)
            params = db_config.get_connection_params()
            if not params:
                raise StoreError("Database not configured (DATABASE_URL not set)")
            return psycopg2.connect(**params)
        except psycopg2.Error as e:
            logger.error(f"[store] Failed to connect to database: {e}")
            raise StoreError(f"Database connection failed: {e}") from e

    @contextmanager
    def _cursor(self):
        """Yield a RealDictCursor inside a transaction."""
        conn = self._get_db_conn()
        try:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            try:
                yield cursor
                conn.commit()
            finally:
                cursor.close()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"[store] {self.__class__.__name__} query failed: {e}")
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
