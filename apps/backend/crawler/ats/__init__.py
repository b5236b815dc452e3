"""
ATS parser variants.

Each supported applicant tracking system is one AtsParser subclass offering
``extract_token`` and ``parse``. The registry maps a company's ATS type to
its parser so callers never branch on vendor names.
"""

from .base import AtsParser, ApiAtsParser
from .registry import ParserRegistry, API_ATS_TYPES, BROWSER_ATS_TYPES

__all__ = [
    'AtsParser',
    'ApiAtsParser',
    'ParserRegistry',
    'API_ATS_TYPES',
    'BROWSER_ATS_TYPES',
]
