"""
Match scoring between a job and a user's job profile.

Scores are 0-100 and computed only over the signals the profile actually
sets, so a profile with nothing but keywords is not penalized for having no
title preferences. Scoring is pure: no I/O, no randomness.

Works on anything with ``title``, ``description``, ``department``,
``location`` and ``remote`` attributes (ParsedJob and JobListing).
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.models import JobProfile

TITLE_WEIGHT = 40
KEYWORD_WEIGHT = 30
LOCATION_WEIGHT = 20
REMOTE_WEIGHT = 10

POINTS_PER_KEYWORD = 10
NEUTRAL_SCORE = 50
# Words this short are ignored in partial title matching
MIN_TITLE_WORD_LENGTH = 3


@dataclass
class ScoreCategory:
    name: str
    earned: int
    possible: int
    details: str

    @property
    def percentage(self) -> int:
        if not self.possible:
            return 0
        return _round_half_up(self.earned / self.possible * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "earned": self.earned,
            "possible": self.possible,
            "percentage": self.percentage,
            "details": self.details,
        }


@dataclass
class MatchBreakdown:
    total_score: int
    categories: List[ScoreCategory] = field(default_factory=list)
    profile: Optional[JobProfile] = None

    def to_dict(self) -> Dict[str, Any]:
        profile = self.profile or JobProfile(user_id=0)
        return {
            "totalScore": self.total_score,
            "categories": [c.to_dict() for c in self.categories],
            "profilePreferences": profile.to_dict(),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def matches_as_word(text: str, term: str) -> bool:
    """Whole-word, case-insensitive match, so "US" does not match "Austin"."""
    if not text or not term:
        return False
    return re.search(rf"\b{re.escape(term.strip())}\b", text, re.I) is not None


def _searchable_content(job) -> str:
    parts = [job.title]
    if job.description:
        parts.append(job.description)
    if job.department:
        parts.append(job.department)
    return " ".join(parts).lower()


def title_score(job_title: str, profile_titles: List[str]) -> int:
    """Full points when a profile title appears in the job title, else partial word overlap."""
    title_lower = job_title.lower()
    for title in profile_titles:
        if title.lower() in title_lower:
            return TITLE_WEIGHT

    job_words = {w for w in title_lower.split() if len(w) >= MIN_TITLE_WORD_LENGTH}
    for title in profile_titles:
        title_words = [w for w in title.lower().split() if len(w) >= MIN_TITLE_WORD_LENGTH]
        matching = [w for w in title_words if w in job_words]
        if matching:
            return math.floor(len(matching) / len(title_words) * TITLE_WEIGHT)
    return 0


def matched_keywords(job, keywords: List[str]) -> List[str]:
    content = _searchable_content(job)
    return [k for k in keywords if k.lower() in content]


def remote_score(is_remote: bool, remote_only: bool) -> int:
    if remote_only:
        return REMOTE_WEIGHT if is_remote else 0
    return REMOTE_WEIGHT


def _has_preferences(profile: JobProfile) -> bool:
    return bool(profile.titles or profile.keywords or profile.locations or profile.remote_only)


def calculate_match_score_with_breakdown(job, profile: Optional[JobProfile]) -> MatchBreakdown:
    """
    Score ``job`` against ``profile`` and explain each signal.

    Returns:
        MatchBreakdown whose ``total_score`` is 0-100. No profile, or a
        profile with no scoring preferences, yields the neutral score. A
        listing whose location hits the exclude list scores 0.
    """
    if profile is None:
        return MatchBreakdown(
            NEUTRAL_SCORE,
            [ScoreCategory("No Profile", NEUTRAL_SCORE, 100, "No job profile set - showing neutral score")],
        )

    excluded = [loc for loc in profile.excluded_locations if matches_as_word(job.location or "", loc)]
    if excluded:
        return MatchBreakdown(
            0,
            [ScoreCategory(
                "Excluded Location", 0, 0,
                f"\"{job.location}\" matches excluded: {', '.join(excluded)}",
            )],
            profile,
        )

    if not _has_preferences(profile):
        return MatchBreakdown(
            NEUTRAL_SCORE,
            [ScoreCategory("No Preferences", NEUTRAL_SCORE, 100, "No preferences configured - showing neutral score")],
            profile,
        )

    categories: List[ScoreCategory] = []

    if profile.titles:
        earned = title_score(job.title, profile.titles)
        matched = [t for t in profile.titles if t.lower() in job.title.lower()]
        details = f"Matched: {', '.join(matched)}" if matched else f"No match for: {', '.join(profile.titles)}"
        categories.append(ScoreCategory("Title Match", earned, TITLE_WEIGHT, details))

    if profile.keywords:
        found = matched_keywords(job, profile.keywords)
        earned = min(KEYWORD_WEIGHT, len(found) * POINTS_PER_KEYWORD)
        details = f"Found: {', '.join(found)}" if found else f"None found from: {', '.join(profile.keywords)}"
        categories.append(ScoreCategory("Keywords", earned, KEYWORD_WEIGHT, details))

    # Listings without a location are not scored on location at all
    if profile.locations and job.location:
        matched = [loc for loc in profile.locations if matches_as_word(job.location, loc)]
        earned = LOCATION_WEIGHT if matched else 0
        if matched:
            details = f"Matched: {', '.join(matched)}"
        else:
            details = f"\"{job.location}\" doesn't match: {', '.join(profile.locations)}"
        categories.append(ScoreCategory("Location", earned, LOCATION_WEIGHT, details))

    if profile.remote_only:
        earned = remote_score(bool(job.remote), profile.remote_only)
        details = "Job is remote" if job.remote else "Job is not remote"
        categories.append(ScoreCategory("Remote", earned, REMOTE_WEIGHT, details))

    possible = sum(c.possible for c in categories)
    if possible == 0:
        return MatchBreakdown(NEUTRAL_SCORE, categories, profile)

    earned = sum(c.earned for c in categories)
    return MatchBreakdown(_round_half_up(earned / possible * 100), categories, profile)


def calculate_match_score(job, profile: Optional[JobProfile]) -> int:
    return calculate_match_score_with_breakdown(job, profile).total_score
