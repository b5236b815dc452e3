#!/usr/bin/env python3
"""
Retention maintenance: delete dismissed job listings that have not been seen
by a crawl for longer than the retention window.

Runs independently of crawling (cron or by hand).

Usage:
    python scripts/cleanup_dismissed.py                  # every user, JOBRADAR_RETENTION_DAYS
    python scripts/cleanup_dismissed.py --user-id 7 --days 60
    python scripts/cleanup_dismissed.py --dry-run
"""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import CrawlSettings  # noqa: E402
from core.errors import StoreError  # noqa: E402
from pipeline.listing_store import JobListingStore  # noqa: E402

logger = logging.getLogger("cleanup_dismissed")


def main(argv: Optional[List[str]] = None, store: Optional[JobListingStore] = None) -> int:
    parser = argparse.ArgumentParser(description="Delete old dismissed job listings")
    parser.add_argument("--user-id", type=int, help="Only clean this user's listings")
    parser.add_argument("--days", type=int, help="Retention window in days (default: JOBRADAR_RETENTION_DAYS)")
    parser.add_argument("--dry-run", action="store_true", help="Report how many would be deleted")
    args = parser.parse_args(argv)

    days = args.days or CrawlSettings.from_env().retention_days
    if days < 1:
        parser.error("--days must be at least 1")

    store = store or JobListingStore()
    try:
        count = store.cleanup_dismissed(args.user_id, older_than_days=days, dry_run=args.dry_run)
    except StoreError as e:
        logger.error(f"Cleanup failed: {e}")
        return 1

    scope = f"user {args.user_id}" if args.user_id is not None else "all users"
    verb = "Would delete" if args.dry_run else "Deleted"
    logger.info(f"{verb} {count} dismissed listings older than {days} days ({scope})")
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    sys.exit(main())
