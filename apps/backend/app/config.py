import os
from dataclasses import dataclass

import psycopg2

from app.db_config import db_config


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class CrawlSettings:
    browser_restart_interval: int = 5
    browser_delay_seconds: float = 2.0
    navigation_timeout_ms: int = 30000
    load_more_timeout_ms: int = 1000
    settle_ms: int = 2000
    max_scrolls: int = 5
    api_concurrency: int = 4
    per_vendor_concurrency: int = 2
    http_timeout_seconds: float = 30.0
    retention_days: int = 30
    stuck_crawl_minutes: int = 5

    @classmethod
    def from_env(cls) -> "CrawlSettings":
        return cls(
            browser_restart_interval=max(1, _env_int("JOBRADAR_BROWSER_RESTART_INTERVAL", 5)),
            browser_delay_seconds=_env_float("JOBRADAR_BROWSER_DELAY_SECONDS", 2.0),
            navigation_timeout_ms=_env_int("JOBRADAR_NAVIGATION_TIMEOUT_MS", 30000),
            load_more_timeout_ms=_env_int("JOBRADAR_LOAD_MORE_TIMEOUT_MS", 1000),
            settle_ms=_env_int("JOBRADAR_SETTLE_MS", 2000),
            max_scrolls=_env_int("JOBRADAR_MAX_SCROLLS", 5),
            api_concurrency=max(1, _env_int("JOBRADAR_API_CONCURRENCY", 4)),
            per_vendor_concurrency=max(1, _env_int("JOBRADAR_PER_VENDOR_CONCURRENCY", 2)),
            http_timeout_seconds=_env_float("JOBRADAR_HTTP_TIMEOUT", 30.0),
            retention_days=_env_int("JOBRADAR_RETENTION_DAYS", 30),
            stuck_crawl_minutes=_env_int("JOBRADAR_STUCK_CRAWL_MINUTES", 5),
        )


class Capabilities:
    @staticmethod
    def is_db_enabled() -> bool:
        return db_config.is_db_enabled

    @staticmethod
    def check_db_connection() -> bool:
        """Verify database connection with a trivial query"""
        if not Capabilities.is_db_enabled():
            return False

        try:
            # Very short timeout for health checks
            conn = psycopg2.connect(db_config.database_url, connect_timeout=1)
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
            conn.close()
            return True
        except Exception:
            return False

    @staticmethod
    def is_browser_enabled() -> bool:
        # Hosts too small for Chromium run the local crawler instead
        return os.getenv("JOBRADAR_ENABLE_BROWSER", "true").lower() == "true"

    @classmethod
    def get_status(cls) -> dict:
        db = cls.check_db_connection()
        browser = cls.is_browser_enabled()
        return {
            "status": "green" if db else "amber",
            "components": {
                "db": db,
                "browser": browser,
            },
        }
