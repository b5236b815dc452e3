"""
Database configuration module.
Reads the PostgreSQL connection string from DATABASE_URL.
"""

import os
import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class DBConfig:
    """Database configuration"""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL")

        if self.database_url:
            # Mask password in log
            try:
                parsed = urlparse(self.database_url)
                logger.info(
                    f"[db_config] DATABASE_URL configured: {parsed.scheme}://{parsed.username}:***@"
                    f"{parsed.hostname}:{parsed.port or 5432}{parsed.path}"
                )
            except ValueError as e:
                logger.info(f"[db_config] DATABASE_URL configured (unable to parse for logging: {e})")
        else:
            logger.warning("[db_config] DATABASE_URL not set - database connections will fail")

    @property
    def is_db_enabled(self) -> bool:
        return bool(self.database_url)

    def get_connection_params(self) -> dict | None:
        """
        Get psycopg2 connection parameters.
        Returns None when no database is configured.
        """
        if not self.database_url:
            return None
        return {"dsn": self.database_url, "connect_timeout": 10}


# Global instance
db_config = DBConfig()
