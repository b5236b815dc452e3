#!/usr/bin/env python3
"""
Create the crawl tables (companies, job_listings, crawl_logs, job_profiles).
Idempotent - safe to run multiple times.
"""
import argparse
import logging
import os
import sys

import psycopg2
from dotenv import load_dotenv

logger = logging.getLogger("apply_schema")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS companies (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    career_page_url TEXT NOT NULL,
    ats_type TEXT,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    headquarters TEXT,
    founded_year INTEGER,
    revenue_estimate TEXT,
    stage TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_companies_user_active ON companies (user_id, active);

CREATE TABLE IF NOT EXISTS job_listings (
    id SERIAL PRIMARY KEY,
    company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    external_id TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    location TEXT,
    remote BOOLEAN NOT NULL DEFAULT FALSE,
    department TEXT,
    description TEXT,
    posted_at TIMESTAMPTZ,
    first_seen_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_seen_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    status TEXT NOT NULL DEFAULT 'new'
        CHECK (status IN ('new', 'viewed', 'applied', 'dismissed')),
    match_score REAL
);
CREATE UNIQUE INDEX IF NOT EXISTS uq_job_listings_company_external
    ON job_listings (company_id, external_id);
CREATE INDEX IF NOT EXISTS idx_job_listings_status_seen ON job_listings (status, last_seen_at);

CREATE TABLE IF NOT EXISTS crawl_logs (
    id SERIAL PRIMARY KEY,
    company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at TIMESTAMPTZ,
    status TEXT NOT NULL CHECK (status IN ('running', 'success', 'failed')),
    jobs_found INTEGER NOT NULL DEFAULT 0,
    new_jobs INTEGER NOT NULL DEFAULT 0,
    error TEXT
);
CREATE INDEX IF NOT EXISTS idx_crawl_logs_company_started ON crawl_logs (company_id, started_at DESC);

CREATE TABLE IF NOT EXISTS job_profiles (
    user_id INTEGER PRIMARY KEY,
    keywords TEXT[] NOT NULL DEFAULT '{}',
    titles TEXT[] NOT NULL DEFAULT '{}',
    locations TEXT[] NOT NULL DEFAULT '{}',
    excluded_locations TEXT[] NOT NULL DEFAULT '{}',
    remote_only BOOLEAN NOT NULL DEFAULT FALSE
);
"""


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the JobRadar crawl tables")
    parser.add_argument("--database-url", help="PostgreSQL DSN (default: DATABASE_URL)")
    args = parser.parse_args()

    db_url = args.database_url or os.getenv("DATABASE_URL")
    if not db_url:
        logger.error("DATABASE_URL environment variable is not set")
        return 1

    try:
        conn = psycopg2.connect(db_url, connect_timeout=10)
    except psycopg2.Error as e:
        logger.error(f"Failed to connect: {e}")
        return 1

    try:
        with conn:
            with conn.cursor() as cursor:
                cursor.execute(SCHEMA_SQL)
        logger.info("Schema applied")
    except psycopg2.Error as e:
        logger.error(f"Failed to apply schema: {e}")
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    sys.exit(main())
