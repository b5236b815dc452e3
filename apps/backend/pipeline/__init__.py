"""
Job extraction and persistence pipeline.

Extraction turns rendered career pages into ParsedJob records (JSON-LD
first, DOM heuristics second); the stores persist listings, crawl logs,
companies and job profiles in PostgreSQL.
"""

__version__ = "1.0.0"
