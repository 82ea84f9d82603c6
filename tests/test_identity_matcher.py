"""Tests for the game identity matcher."""

import pytest

from gamerecon.consumers.matching.identity_matcher import IdentityMatcher
from tests.conftest import make_candidate, make_game


@pytest.fixture
def matcher():
    return IdentityMatcher()


class TestScore:
    def test_exact_match_is_capped_at_one(self, matcher):
        result = matcher.score(make_game(), make_candidate())
        assert result.home_score == 1.0
        assert result.away_score == 1.0
        assert result.confidence == 1.0

    def test_bonus_requires_both_sides(self, matcher):
        # home exact, away unrelated -> plain average, no bonus
        result = matcher.score(make_game(), make_candidate(away="Gonzaga"))
        assert result.confidence == pytest.approx((1.0 + result.away_score) / 2)

    def test_bonus_applied_when_both_sides_close(self, matcher):
        game = make_game(home="Michigan St.", away="Kentucky")
        candidate = make_candidate(home="Michigan State", away="Kentucky Wildcats")
        result = matcher.score(game, candidate)
        expected = min(1.0, (result.home_score + result.away_score) / 2 + 0.1)
        assert result.confidence == pytest.approx(expected)


class TestMatch:
    def test_exact_names_accepted(self, matcher):
        result = matcher.match(make_game(), [make_candidate()])
        assert result is not None
        assert result.candidate_id == "555001"
        assert result.confidence >= 0.95

    def test_swapped_orientation_rejected(self, matcher):
        """Home/away are not interchangeable."""
        result = matcher.match(make_game(), [make_candidate(home="Duke", away="Kansas")])
        assert result is None

    def test_below_floor_returns_none(self, matcher):
        candidates = [make_candidate(home="Gonzaga", away="Baylor")]
        assert matcher.match(make_game(), candidates) is None

    def test_no_candidates(self, matcher):
        assert matcher.match(make_game(), []) is None

    def test_best_candidate_wins(self, matcher):
        candidates = [
            make_candidate("1", home="Kansas", away="Gonzaga"),
            make_candidate("2", home="Kansas", away="Duke"),
        ]
        assert matcher.match(make_game(), candidates).candidate_id == "2"

    def test_first_candidate_wins_tie(self, matcher):
        candidates = [make_candidate("first"), make_candidate("second")]
        assert matcher.match(make_game(), candidates).candidate_id == "first"

    def test_empty_names_never_match(self, matcher):
        game = make_game(home="", away="")
        assert matcher.match(game, [make_candidate(home="", away="")]) is None

    def test_candidate_with_empty_names_skipped(self, matcher):
        candidates = [make_candidate("blank", home="", away=""), make_candidate("real")]
        assert matcher.match(make_game(), candidates).candidate_id == "real"

    def test_custom_floor(self, matcher):
        # one side exact, the other far off: average lands just under 0.7
        candidate = make_candidate(home="Kansas", away="Duquesne")
        assert matcher.match(make_game(), [candidate]) is None
        assert IdentityMatcher(confidence_floor=0.5).match(make_game(), [candidate]) is not None


class TestMatchMany:
    def test_pairs_one_to_one(self, matcher):
        games = [
            make_game("g1", home="Kansas", away="Duke"),
            make_game("g2", home="Kentucky", away="Michigan St."),
            make_game("g3", home="Gonzaga", away="Baylor"),
        ]
        candidates = [
            make_candidate("c2", home="Kentucky", away="Michigan State"),
            make_candidate("c1", home="Kansas", away="Duke"),
            make_candidate("c9", home="Purdue", away="Indiana"),
        ]

        report = matcher.match_many(games, candidates)

        assert [(g.id, r.candidate_id) for g, r in report.matched] == [("g1", "c1"), ("g2", "c2")]
        assert [g.id for g in report.unmatched] == ["g3"]
        assert [c.id for c in report.unused_candidates] == ["c9"]
        assert report.match_rate == pytest.approx(66.67)

    def test_candidate_consumed_once(self, matcher):
        games = [make_game("g1"), make_game("g2")]
        report = matcher.match_many(games, [make_candidate("c1")])
        assert len(report.matched) == 1
        assert report.unmatched[0].id == "g2"

    def test_dates_restrict_pool(self, matcher):
        games = [make_game("g1", game_date="2024-11-13")]
        report = matcher.match_many(games, [make_candidate("c1", game_date="2024-11-12")])
        assert report.matched == []

    def test_to_dict(self, matcher):
        report = matcher.match_many([make_game("g1")], [])
        data = report.to_dict()
        assert data["matched"] == 0
        assert data["unmatched_games"][0]["primary_id"] == "g1"
        assert data["match_rate"] == 0.0
