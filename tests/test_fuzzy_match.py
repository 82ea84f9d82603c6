"""Tests for team name normalization and similarity scoring."""

import pytest

from gamerecon.utilities.fuzzy_match import (
    TEAM_ABBREVIATIONS,
    TeamNameMatcher,
    get_matcher,
    normalize_team_name,
    similarity,
)

NAMES = [
    "Michigan St.",
    "UConn",
    "Saint Mary's (CA)",
    "  North   Carolina  ",
    "Ole Miss",
    "San José State",
    "Texas A&M",
    "",
]


class TestNormalizeTeamName:
    def test_trailing_st_becomes_state(self):
        assert normalize_team_name("Michigan St.") == "michigan state"

    def test_st_only_rewritten_at_end(self):
        """A leading 'St.' is a saint, not a state."""
        assert normalize_team_name("St. John's") == "st johns"

    def test_punctuation_and_whitespace(self):
        assert normalize_team_name("Saint Mary's (CA)") == "saint marys ca"
        assert normalize_team_name("  North   Carolina  ") == "north carolina"

    def test_accents_folded(self):
        assert normalize_team_name("San José State") == "san jose state"

    @pytest.mark.parametrize("abbr,expanded", sorted(TEAM_ABBREVIATIONS.items()))
    def test_abbreviations_expand(self, abbr, expanded):
        assert normalize_team_name(abbr.upper()) == expanded

    def test_abbreviation_only_matches_whole_name(self):
        assert normalize_team_name("UNC Wilmington") == "unc wilmington"

    def test_empty_and_none(self):
        assert normalize_team_name("") == ""
        assert normalize_team_name(None) == ""

    @pytest.mark.parametrize("name", NAMES)
    def test_idempotent(self, name):
        once = normalize_team_name(name)
        assert normalize_team_name(once) == once


class TestSimilarity:
    def test_identical_after_normalization(self):
        assert similarity("Michigan St.", "michigan state") == 1.0
        assert similarity("UConn", "Connecticut") == 1.0

    def test_both_empty_scores_one(self):
        assert similarity("", "") == 1.0

    def test_one_empty_scores_zero(self):
        assert similarity("Duke", "") == 0.0
        assert similarity(None, "Duke") == 0.0

    def test_substring_scores_between_base_and_one(self):
        score = similarity("Kentucky", "Kentucky Wildcats")
        assert 0.85 <= score < 1.0
        assert score == pytest.approx(0.85 + 0.15 * (8 / 17))

    def test_edit_distance_fallback(self):
        # one substitution over 6 characters
        assert similarity("Purdue", "Purdux") == pytest.approx(1 - 1 / 6)

    def test_unrelated_names_score_low(self):
        assert similarity("Kansas", "Gonzaga") < 0.5

    @pytest.mark.parametrize("a", NAMES)
    @pytest.mark.parametrize("b", ["Duke", "Michigan State", "Mississippi", ""])
    def test_symmetric_and_bounded(self, a, b):
        score = similarity(a, b)
        assert 0.0 <= score <= 1.0
        assert score == similarity(b, a)


class TestTeamNameMatcher:
    def test_best_match_above_threshold(self):
        matcher = TeamNameMatcher(threshold=0.8)
        result = matcher.best_match("Michigan St.", ["Michigan", "Michigan State", "Minnesota"])
        assert result.matched is True
        assert result.candidate == "Michigan State"
        assert result.score == 1.0

    def test_below_threshold(self):
        result = TeamNameMatcher(threshold=0.9).best_match("Kansas", ["Gonzaga", "Baylor"])
        assert result.matched is False
        assert result.candidate is None

    def test_first_candidate_wins_tie(self):
        result = TeamNameMatcher().best_match("Duke", ["DUKE", "duke"])
        assert result.candidate == "DUKE"

    def test_empty_name_never_matches(self):
        result = TeamNameMatcher().best_match("", ["", "Duke"])
        assert result.matched is False

    def test_get_matcher_singleton(self):
        assert get_matcher() is get_matcher()
