"""
Unit tests for core/matching.py
"""
import pytest

from core.matching import (
    NEUTRAL_SCORE,
    calculate_match_score,
    calculate_match_score_with_breakdown,
    matches_as_word,
    title_score,
)
from core.models import JobProfile, ParsedJob


def job(title="Software Engineer", location=None, remote=False, description=None, department=None):
    return ParsedJob(
        external_id="1",
        title=title,
        url="https://careers.example.com/jobs/1",
        location=location,
        remote=remote,
        description=description,
        department=department,
    )


class TestNeutralScores:
    def test_no_profile(self):
        breakdown = calculate_match_score_with_breakdown(job(), None)
        assert breakdown.total_score == NEUTRAL_SCORE
        assert breakdown.categories[0].name == "No Profile"

    def test_empty_profile(self):
        breakdown = calculate_match_score_with_breakdown(job(), JobProfile(user_id=1))
        assert breakdown.total_score == NEUTRAL_SCORE
        assert breakdown.categories[0].name == "No Preferences"

    def test_location_only_profile_and_job_without_location(self):
        """Location is the only preference and the job has none: nothing to score."""
        profile = JobProfile(user_id=1, locations=["Berlin"])
        breakdown = calculate_match_score_with_breakdown(job(location=None), profile)
        assert breakdown.total_score == NEUTRAL_SCORE
        assert breakdown.categories == []

    def test_excluded_only_profile_without_hit(self):
        profile = JobProfile(user_id=1, excluded_locations=["India"])
        assert calculate_match_score(job(location="Berlin"), profile) == NEUTRAL_SCORE


class TestScoring:
    def test_full_profile_scenario(self):
        profile = JobProfile(
            user_id=1,
            titles=["Backend Engineer"],
            keywords=["python", "kubernetes", "go"],
            locations=["Berlin"],
            remote_only=True,
        )
        listing = job(
            title="Senior Backend Engineer",
            location="Berlin, Germany",
            remote=False,
            description="We use Python and Kubernetes.",
        )

        breakdown = calculate_match_score_with_breakdown(listing, profile)

        by_name = {c.name: c for c in breakdown.categories}
        assert by_name["Title Match"].earned == 40
        # "go" occurs nowhere in the title or description
        assert by_name["Keywords"].earned == 20
        assert by_name["Location"].earned == 20
        assert by_name["Remote"].earned == 0
        assert by_name["Remote"].details == "Job is not remote"
        # 80 of 100
        assert breakdown.total_score == 80

    def test_partial_title_overlap(self):
        assert title_score("Data Platform Engineer", ["Backend Engineer"]) == 20
        assert title_score("Office Manager", ["Backend Engineer"]) == 0
        # Short words are ignored
        assert title_score("VP of Sales", ["Head of Marketing"]) == 0

    def test_keywords_capped(self):
        profile = JobProfile(user_id=1, keywords=["python", "sql", "aws", "docker"])
        listing = job(description="python sql aws docker")
        breakdown = calculate_match_score_with_breakdown(listing, profile)
        assert breakdown.categories[0].earned == 30
        assert breakdown.total_score == 100

    def test_keywords_search_department(self):
        profile = JobProfile(user_id=1, keywords=["platform"])
        assert calculate_match_score(job(department="Platform"), profile) == 33

    def test_remote_only(self):
        profile = JobProfile(user_id=1, remote_only=True)
        assert calculate_match_score(job(remote=True), profile) == 100
        assert calculate_match_score(job(remote=False), profile) == 0

    def test_rounding_half_up(self):
        # One of three title words: floor(40 / 3)
        profile = JobProfile(user_id=1, titles=["Chief Data Officer"], keywords=["rust"])
        listing = job(title="Data Analyst", description="python")
        breakdown = calculate_match_score_with_breakdown(listing, profile)
        assert breakdown.categories[0].earned == 13
        assert breakdown.total_score == 19  # 13 / 70 = 18.57

    def test_deterministic(self):
        profile = JobProfile(user_id=1, titles=["Engineer"], keywords=["python"], locations=["Remote"])
        listing = job(location="Remote - US", description="Python")
        scores = {calculate_match_score(listing, profile) for _ in range(5)}
        assert len(scores) == 1


class TestExcludedLocations:
    def test_excluded_location_scores_zero(self):
        profile = JobProfile(user_id=1, titles=["Software Engineer"], excluded_locations=["India"])
        breakdown = calculate_match_score_with_breakdown(job(location="Bangalore, India"), profile)

        assert breakdown.total_score == 0
        assert breakdown.categories[0].name == "Excluded Location"
        assert "India" in breakdown.categories[0].details

    def test_whole_word_only(self):
        """"US" must not exclude "Austin"."""
        profile = JobProfile(user_id=1, titles=["Software Engineer"], excluded_locations=["US"])
        assert calculate_match_score(job(location="Austin, TX"), profile) == 100


class TestWordMatching:
    @pytest.mark.parametrize("text,term,expected", [
        ("Austin, TX", "US", False),
        ("Remote - US", "US", True),
        ("New York, NY", "new york", True),
        ("", "Berlin", False),
        ("Berlin", "", False),
        ("C++ Developer", "C++", False),
    ])
    def test_matches_as_word(self, text, term, expected):
        assert matches_as_word(text, term) is expected


class TestBreakdownSerialization:
    def test_to_dict_shape(self):
        profile = JobProfile(user_id=1, titles=["Engineer"])
        data = calculate_match_score_with_breakdown(job(), profile).to_dict()

        assert data["totalScore"] == 100
        assert data["categories"][0] == {
            "name": "Title Match",
            "earned": 40,
            "possible": 40,
            "percentage": 100,
            "details": "Matched: Engineer",
        }
        assert data["profilePreferences"]["titles"] == ["Engineer"]

    def test_no_profile_serializes_empty_preferences(self):
        data = calculate_match_score_with_breakdown(job(), None).to_dict()
        assert data["profilePreferences"]["keywords"] == []
